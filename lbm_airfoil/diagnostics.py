"""
Flow Diagnostics

Derived quantities for the renderer and the host: speed, vorticity,
pressure, Reynolds number and integrated lift/drag.

Lift and drag come from pressure projection only: gauge pressure of
every fluid cell next to the body is pushed along the link toward the
solid neighbour and the sum is projected onto the free-stream axes.
Viscous shear is ignored, so the coefficients are a first-order
approximation good enough for display but not for validation.
"""

import numpy as np
from .lattice import EX, EY, Q, CS2, OPPOSITE
from .observables import compute_pressure, compute_velocity_magnitude, compute_vorticity
from .streaming import shift_from_upstream


def reynolds_number(length, speed, viscosity):
    """Re = L U / nu with L the chord length in cells."""
    return length * speed / viscosity


def pressure_force(rho, solid, rho_ref=1.0):
    """
    Net pressure force on the solid body.

    F = sum over fluid cells x, directions k with x + e_k solid of
        (p(x) - p_ref) * e_k

    Parameters
    ----------
    rho : ndarray
        Density field, shape (ny, nx)
    solid : ndarray
        Boolean solid mask
    rho_ref : float
        Reference density for the gauge pressure

    Returns
    -------
    fx, fy : float
        Force components in lattice units
    """
    gauge = np.where(solid, 0.0, compute_pressure(rho) - rho_ref * CS2)
    fluid = ~solid

    fx, fy = 0.0, 0.0
    for k in range(1, Q):
        # Value at x + e_k is the upstream value for the opposite direction
        solid_ahead = shift_from_upstream(solid, OPPOSITE[k], fill=False)
        wall = fluid & solid_ahead
        if not wall.any():
            continue
        p_sum = float(np.sum(gauge[wall]))
        fx += p_sum * EX[k]
        fy += p_sum * EY[k]

    return fx, fy


def force_coefficients(fx, fy, flow_angle, speed, chord, rho_ref=1.0):
    """
    Project a force onto the free-stream axes and normalize.

    C = F / (0.5 rho U^2 L)

    Returns
    -------
    drag, lift : float
        Coefficients along and perpendicular to the flow direction; zero
        when the free stream is at rest
    """
    dynamic = 0.5 * rho_ref * speed * speed * chord
    if dynamic <= 0.0:
        return 0.0, 0.0

    c, s = np.cos(flow_angle), np.sin(flow_angle)
    drag = fx * c + fy * s
    lift = -fx * s + fy * c
    return drag / dynamic, lift / dynamic


def compute_diagnostics(lattice, flow_speed, flow_angle, viscosity, chord, rho_ref=1.0):
    """
    Derived fields and integrated coefficients for the current state.

    Parameters
    ----------
    lattice : Lattice
        Grid whose macroscopic fields are current (after a full step)
    flow_speed, flow_angle, viscosity : float
        Free-stream parameters
    chord : float
        Reference length in cells
    rho_ref : float
        Free-stream density

    Returns
    -------
    diagnostics : dict
        'speed', 'curl', 'pressure' as flat row-major arrays of length
        xdim * ydim; 'reynolds', 'lift', 'drag' (coefficients) and the
        raw 'force_x', 'force_y'
    """
    rho, ux, uy, solid = lattice.rho, lattice.ux, lattice.uy, lattice.solid

    speed = compute_velocity_magnitude(ux, uy)
    curl = compute_vorticity(ux, uy)
    curl[solid] = 0.0
    pressure = compute_pressure(rho)

    fx, fy = pressure_force(rho, solid, rho_ref)
    drag, lift = force_coefficients(fx, fy, flow_angle, flow_speed, chord, rho_ref)

    return {
        'speed': speed.ravel(),
        'curl': curl.ravel(),
        'pressure': pressure.ravel(),
        'reynolds': reynolds_number(chord, flow_speed, viscosity),
        'lift': lift,
        'drag': drag,
        'force_x': fx,
        'force_y': fy,
    }
