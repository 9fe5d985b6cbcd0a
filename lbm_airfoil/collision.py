"""
Collision Operators

BGK and MRT collision models for LBM.

The collision step models molecular interactions and drives the distribution
toward equilibrium. The relaxation rate omega = 1/tau controls the viscosity:

    nu = c_s^2 * (tau - 0.5) * dt      =>      omega = 1 / (3 nu + 0.5)

where c_s^2 = 1/3 for D2Q9 and dt = 1 in lattice units.

Stability requires 0 < omega < 2 (nu > 0); close to 2 the scheme is
under-damped and BGK in particular becomes fragile.
"""

import warnings

import numpy as np
from numba import njit, prange

from .errors import ConfigurationError
from .equilibrium import compute_equilibrium, compute_equilibrium_fast
from .observables import compute_macroscopic, compute_macroscopic_fast

# Above this omega the BGK scheme is prone to blowing up
OMEGA_WARN = 1.98

# Lallemand & Luo (2000) moment basis in the EX/EY ordering of lattice.py
# Rows: rho, e, eps, jx, qx, jy, qy, pxx, pxy
MRT_M = np.array([
    [1, 1, 1, 1, 1, 1, 1, 1, 1],
    [-4, -1, -1, -1, -1, 2, 2, 2, 2],
    [4, -2, -2, -2, -2, 1, 1, 1, 1],
    [0, 1, 0, -1, 0, 1, -1, -1, 1],
    [0, -2, 0, 2, 0, 1, -1, -1, 1],
    [0, 0, 1, 0, -1, 1, 1, -1, -1],
    [0, 0, -2, 0, 2, 1, 1, -1, -1],
    [0, 1, -1, 1, -1, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 1, -1, 1, -1],
], dtype=np.float64)

MRT_M_INV = np.linalg.inv(MRT_M)

# Conserved moments (density and momentum)
MRT_CONSERVED = (0, 3, 5)


def tau_from_viscosity(nu, dt=1.0, cs2=1.0/3.0):
    """
    Compute relaxation time from kinematic viscosity.

    tau = nu / (c_s^2 * dt) + 0.5
    """
    return nu / (cs2 * dt) + 0.5


def viscosity_from_tau(tau, dt=1.0, cs2=1.0/3.0):
    """
    Compute kinematic viscosity from relaxation time.

    nu = c_s^2 * (tau - 0.5) * dt
    """
    if tau <= 0.5:
        raise ConfigurationError(f"tau must be > 0.5 for stability, got {tau}")
    return cs2 * (tau - 0.5) * dt


def omega_from_viscosity(nu):
    """
    Relaxation rate for a kinematic viscosity: omega = 1 / (3 nu + 0.5).

    Raises
    ------
    ConfigurationError
        If nu <= 0 or the resulting omega leaves (0, 2)
    """
    if not np.isfinite(nu) or nu <= 0.0:
        raise ConfigurationError(f"viscosity must be > 0, got {nu}")
    return validate_omega(1.0 / tau_from_viscosity(nu))


def validate_omega(omega, name="omega"):
    """
    Validate that a relaxation rate is in the stable range (0, 2).

    Raises
    ------
    ConfigurationError
        If omega is outside (0, 2)

    Returns
    -------
    omega : float
        Validated omega value
    """
    if not (0.0 < omega < 2.0):
        raise ConfigurationError(
            f"{name} must be in (0, 2) for stability (got {omega}). "
            f"This corresponds to nu > 0."
        )
    if omega > OMEGA_WARN:
        warnings.warn(
            f"{name} = {omega:.4f} is close to 2, the BGK stability limit. "
            f"Increase viscosity or use MRT collision."
        )
    return omega


def bgk_collision(f, f_eq, omega):
    """
    BGK (Bhatnagar-Gross-Krook) collision operator.

    f_out = f + omega * (f_eq - f)

    Parameters
    ----------
    f : ndarray
        Distribution functions (Q, ny, nx)
    f_eq : ndarray
        Equilibrium distribution (Q, ny, nx)
    omega : float or ndarray
        Relaxation rate, scalar or per-cell field of shape (ny, nx)

    Returns
    -------
    f_out : ndarray
        Post-collision distribution
    """
    return f + omega * (f_eq - f)


@njit(parallel=True, cache=True)
def bgk_collision_numba(f, f_eq, omega, solid):
    """
    Numba-accelerated in-place BGK collision over fluid cells.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    omega : ndarray
        Per-cell relaxation rate, shape (ny, nx)
    solid : ndarray
        Boolean solid mask; solid cells are skipped
    """
    q, ny, nx = f.shape

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                continue
            w_ij = omega[j, i]
            for k in range(q):
                f[k, j, i] += w_ij * (f_eq[k, j, i] - f[k, j, i])


def mrt_relaxation_rates(omega, rates):
    """
    Diagonal of the MRT relaxation matrix.

    Parameters
    ----------
    omega : float or ndarray
        Shear relaxation rate (sets viscosity); may be a per-cell field
    rates : MRTRates
        Rates for the energy, energy-square and heat-flux moments

    Returns
    -------
    s : ndarray
        Shape (Q,) for scalar omega, (Q, ny, nx) for a field
    """
    omega = np.asarray(omega, dtype=np.float64)
    s = np.empty((9,) + omega.shape, dtype=np.float64)
    s[0] = 1.0
    s[1] = rates.s_e
    s[2] = rates.s_eps
    s[3] = 1.0
    s[4] = rates.s_q
    s[5] = 1.0
    s[6] = rates.s_q
    s[7] = omega
    s[8] = omega
    return s


def mrt_collision(f, f_eq, s):
    """
    MRT (Multi-Relaxation-Time) collision operator.

    f_out = f - M^-1 S (M f - M f_eq)

    Each hydrodynamic moment relaxes at its own rate. Density and
    momentum moments are identical before and after (m = m_eq for them),
    so mass and momentum are conserved exactly. With every rate equal
    to omega this reduces to BGK.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    s : ndarray
        Relaxation rates, shape (Q,) or (Q, ny, nx)

    Returns
    -------
    f_out : ndarray
        Post-collision distribution
    """
    m_neq = np.einsum('ij,jyx->iyx', MRT_M, f - f_eq)
    if s.ndim == 1:
        m_neq *= s[:, None, None]
    else:
        m_neq *= s
    return f - np.einsum('ij,jyx->iyx', MRT_M_INV, m_neq)


def collide(lattice, omega, guard=None, model="bgk", mrt_rates=None):
    """
    One collision pass over the lattice.

    Computes density and velocity of every fluid cell, lets the
    stability guard repair bad cells, then relaxes populations toward
    equilibrium. Solid cells are skipped entirely. The macroscopic
    fields of ``lattice`` are updated with the values used for
    relaxation.

    Parameters
    ----------
    lattice : Lattice
        Grid to update in place
    omega : float
        Relaxation rate
    guard : StabilityGuard, optional
        Per-cell safeguard; None disables the checks
    model : {"bgk", "mrt"}
        Collision model
    mrt_rates : MRTRates, optional
        Non-shear rates for MRT

    Returns
    -------
    corrections : int
        Cells repaired by the guard during this pass
    """
    f = lattice.f
    solid = lattice.solid

    rho, ux, uy = compute_macroscopic_fast(f, solid)

    corrections = 0
    omega_field = omega
    if guard is not None:
        corrections = guard.apply(f, rho, ux, uy, solid)
        omega_field = guard.relaxation_field(omega, ux, uy)

    f_eq = compute_equilibrium_fast(rho, ux, uy)

    if model == "bgk":
        omega_arr = np.broadcast_to(
            np.asarray(omega_field, dtype=np.float64), lattice.shape
        )
        bgk_collision_numba(f, f_eq, np.ascontiguousarray(omega_arr), solid)
    elif model == "mrt":
        if mrt_rates is None:
            raise ValueError("MRT collision requires relaxation rates")
        s = mrt_relaxation_rates(omega_field, mrt_rates)
        f_post = mrt_collision(f, f_eq, s)
        fluid = ~solid
        f[:, fluid] = f_post[:, fluid]
    else:
        raise ValueError(f"Unknown collision model: {model!r}")

    lattice.rho[:] = rho
    lattice.ux[:] = ux
    lattice.uy[:] = uy

    return corrections


def collide_reference(f, omega, solid=None):
    """
    Pure NumPy BGK step used to check the accelerated path.

    Returns the post-collision populations without touching ``f``.
    """
    rho, ux, uy = compute_macroscopic(f, solid)
    f_eq = compute_equilibrium(rho, ux, uy)
    f_out = bgk_collision(f, f_eq, omega)
    if solid is not None:
        f_out[:, solid] = f[:, solid]
    return f_out
