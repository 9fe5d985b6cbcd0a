"""
Field Visualization

Plotting functions for speed, vorticity and pressure around the airfoil.
"""

import os

import matplotlib.pyplot as plt
from matplotlib.patches import Polygon
import numpy as np


def _as_grid(field, shape):
    """Reshape a flat row-major field to (ny, nx)."""
    return np.asarray(field, dtype=np.float64).reshape(shape)


def _outline(ax, polygon, color):
    if polygon is not None:
        ax.add_patch(Polygon(polygon, closed=True, facecolor=color, edgecolor='black', linewidth=0.5))


def plot_velocity_magnitude(ax, speed, solid, polygon=None, title="Speed"):
    """Plot velocity magnitude field."""
    field = speed.copy()
    field[solid] = np.nan
    im = ax.imshow(field, origin='lower', cmap='viridis', aspect='equal')
    ax.set_title(title)
    plt.colorbar(im, ax=ax, label='|u|')
    _outline(ax, polygon, 'white')
    return im


def plot_vorticity(ax, curl, solid, polygon=None, title="Vorticity"):
    """Plot vorticity field with diverging colormap."""
    field = curl.copy()
    field[solid] = np.nan
    vmax = np.nanpercentile(np.abs(field), 95) if np.any(np.isfinite(field)) else 0.0
    vmax = vmax if vmax > 0.0 else 1e-6
    im = ax.imshow(field, origin='lower', cmap='RdBu_r', vmin=-vmax, vmax=vmax, aspect='equal')
    ax.set_title(title)
    plt.colorbar(im, ax=ax, label='curl')
    _outline(ax, polygon, 'gray')
    return im


def plot_pressure(ax, pressure, solid, polygon=None, title="Pressure"):
    """Plot lattice pressure p = rho c_s^2."""
    field = pressure.copy()
    field[solid] = np.nan
    im = ax.imshow(field, origin='lower', cmap='coolwarm', aspect='equal')
    ax.set_title(title)
    plt.colorbar(im, ax=ax, label='p')
    _outline(ax, polygon, 'gray')
    return im


def plot_snapshot(session, save_path=None):
    """
    Speed, vorticity and pressure of a session in one figure.

    Parameters
    ----------
    session : Session
        Simulation to draw
    save_path : str, optional
        Write the figure to this path

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    diagnostics = session.compute_diagnostics()
    shape = (session.ydim, session.xdim)
    solid = session.lattice.solid
    polygon = session.geometry.polygon if session.geometry is not None else None

    fig, axes = plt.subplots(3, 1, figsize=(10, 12))

    angle_deg = np.degrees(session.airfoil.angle) if session.airfoil is not None else 0.0
    plot_velocity_magnitude(
        axes[0], _as_grid(diagnostics['speed'], shape), solid, polygon,
        title=f"Speed (Re = {diagnostics['reynolds']:.0f}, AoA = {angle_deg:.1f} deg)"
    )
    plot_vorticity(axes[1], _as_grid(diagnostics['curl'], shape), solid, polygon)
    plot_pressure(
        axes[2], _as_grid(diagnostics['pressure'], shape), solid, polygon,
        title=f"Pressure (C_L = {diagnostics['lift']:.3f}, C_D = {diagnostics['drag']:.3f})"
    )

    plt.tight_layout()

    if save_path:
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")

    return fig


def plot_coefficient_history(steps, lift, drag, save_path=None):
    """Lift and drag coefficients over time."""
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(steps, drag, 'b-', linewidth=1, label='C_D')
    ax.plot(steps, lift, 'g-', linewidth=1, label='C_L')
    ax.set_xlabel('Step')
    ax.set_ylabel('Coefficient')
    ax.set_title('Pressure Lift and Drag')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")

    return fig
