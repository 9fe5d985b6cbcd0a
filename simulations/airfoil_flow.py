"""
Airfoil Flow Simulation

NACA airfoil in the LBM wind tunnel: runs a session, reports the
pressure lift/drag coefficients and sweeps the angle of attack.
"""

import logging
import time
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_airfoil import AirfoilParams, initialize
from lbm_airfoil.lattice import CS2


def run_airfoil_flow(nx=300, ny=120, flow_speed=0.1, viscosity=0.02, angle=0.1,
                     num_steps=5000, report_every=500, verbose=True, **options):
    """
    Run one airfoil simulation.

    Returns
    -------
    session : Session
        Final state
    history : dict
        'step', 'lift', 'drag' sampled every ``report_every`` steps
    """
    session = initialize(nx, ny, flow_speed, 0.0, viscosity,
                         AirfoilParams(angle=angle), **options)

    if verbose:
        print("Airfoil Flow Simulation")
        print("=" * 50)
        print(f"Domain: {session.xdim} x {session.ydim}")
        print(f"Chord: {session.chord_length} cells, AoA: {np.degrees(angle):.1f} deg")
        print(f"Reynolds: {session.reynolds:.1f}")
        print(f"Omega: {session.omega:.4f}, Ma: {session.mach:.4f}")
        print(f"Collision: {session.flow.collision}, bounce-back: {session.flow.bounce_back}")
        print()

    history = {'step': [], 'lift': [], 'drag': []}
    start = time.time()

    for _ in range(num_steps // report_every):
        session.run(report_every)
        d = session.compute_diagnostics()

        history['step'].append(session.step_count)
        history['lift'].append(d['lift'])
        history['drag'].append(d['drag'])

        if verbose:
            max_speed = np.max(d['speed'])
            print(f"Step {session.step_count}: C_L={d['lift']:.4f}, C_D={d['drag']:.4f}, "
                  f"max |u|={max_speed:.4f}, corrections={session.stability_corrections}")

    elapsed = time.time() - start
    if verbose and elapsed > 0:
        mlups = session.step_count * session.xdim * session.ydim / elapsed / 1e6
        print(f"\nDone: {elapsed:.1f}s, {mlups:.2f} MLUPS")

    return session, history


def angle_sweep(angles=None, num_steps=4000, **kwargs):
    """Mean lift and drag over the second half of each run, per angle."""
    if angles is None:
        angles = np.radians([-4.0, 0.0, 4.0, 8.0])

    print("=" * 60)
    print("Angle of Attack Sweep")
    print("=" * 60)

    results = {}
    for angle in angles:
        session, history = run_airfoil_flow(angle=angle, num_steps=num_steps,
                                            verbose=False, **kwargs)
        half = len(history['lift']) // 2
        results[angle] = (float(np.mean(history['lift'][half:])),
                          float(np.mean(history['drag'][half:])),
                          session.stability_corrections)

    print(f"{'AoA':>8} {'C_L':>10} {'C_D':>10} {'Fixes':>8}")
    print("-" * 60)
    for angle, (cl, cd, fixes) in results.items():
        print(f"{np.degrees(angle):>8.1f} {cl:>10.4f} {cd:>10.4f} {fixes:>8d}")
    print("=" * 60)

    return results


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    from visualization.field_plots import plot_coefficient_history, plot_snapshot

    session, history = run_airfoil_flow()
    plot_snapshot(session, save_path='results/airfoil/snapshot.png')
    plot_coefficient_history(history['step'], history['lift'], history['drag'],
                             save_path='results/airfoil/coefficients.png')

    print(f"\nMean density: {np.mean(session.density[~session.is_solid]):.4f} "
          f"(reference pressure {CS2:.4f})")

    print("\n\n")
    angle_sweep()
