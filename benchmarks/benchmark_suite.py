"""
Benchmark Suite

Throughput of the airfoil solver variants.
Compares BGK and MRT collision with plain and interpolated bounce-back.
"""

import numpy as np
import time
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_airfoil import AirfoilParams, initialize

VARIANTS = {
    'bgk_plain': {'collision': 'bgk', 'bounce_back': 'plain'},
    'bgk_interp': {'collision': 'bgk', 'bounce_back': 'interpolated'},
    'mrt_plain': {'collision': 'mrt', 'bounce_back': 'plain'},
    'mrt_interp': {'collision': 'mrt', 'bounce_back': 'interpolated'},
}


def benchmark_session(nx, ny, num_steps, warmup_steps=20, **options):
    """
    Benchmark complete time steps of one solver configuration.

    Returns
    -------
    mlups : float
        Million Lattice Updates Per Second
    """
    session = initialize(nx, ny, 0.1, 0.0, 0.02, AirfoilParams(angle=0.1), **options)

    # Warmup (Numba compilation)
    session.run(warmup_steps)

    start = time.perf_counter()
    session.run(num_steps)
    elapsed = time.perf_counter() - start

    return num_steps * session.xdim * session.ydim / elapsed / 1e6


def run_full_benchmark(grid_sizes=None, num_steps=200):
    """Run every variant on every grid size."""
    if grid_sizes is None:
        grid_sizes = [(200, 80), (400, 160), (800, 320)]

    print("=" * 70)
    print("Airfoil LBM Benchmark")
    print("=" * 70)
    print(f"Steps per run: {num_steps}")
    print()

    results = {}
    for name, options in VARIANTS.items():
        print(f"Benchmarking {name}...")
        print("-" * 40)
        results[name] = {}
        for nx, ny in grid_sizes:
            mlups = benchmark_session(nx, ny, num_steps, **options)
            results[name][(nx, ny)] = mlups
            print(f"  {nx:4d} x {ny:4d}: {mlups:8.2f} MLUPS")
        print()

    print("=" * 70)
    print("SUMMARY: Performance Comparison (MLUPS)")
    print("=" * 70)
    header = f"{'Grid':<12}" + "".join(f"{name:>14}" for name in VARIANTS)
    print(header)
    print("-" * 70)
    for nx, ny in grid_sizes:
        row = "".join(f"{results[name][(nx, ny)]:>14.2f}" for name in VARIANTS)
        print(f"{nx:4d}x{ny:<7d}{row}")
    print("=" * 70)

    base = np.array([results['bgk_plain'][gs] for gs in grid_sizes])
    for name in VARIANTS:
        if name == 'bgk_plain':
            continue
        ratio = np.array([results[name][gs] for gs in grid_sizes]) / base
        print(f"  {name:<12} relative to bgk_plain: {np.mean(ratio):.2f}x")

    return results


def compute_memory_bandwidth(mlups, bytes_per_site=144):
    """Effective memory bandwidth (GB/s) from MLUPS: 9 doubles read + written."""
    return mlups * bytes_per_site / 1000


if __name__ == "__main__":
    results = run_full_benchmark()

    best = max(max(data.values()) for data in results.values())
    print(f"\nPeak: {best:.2f} MLUPS, {compute_memory_bandwidth(best):.1f} GB/s effective")
