"""
Macroscopic Observable Extraction

Compute density, velocity, and derived quantities from distributions.

In LBM, macroscopic quantities are moments of the distribution function:
    - Density (0th moment): rho = sum_i(f_i)
    - Momentum (1st moment): rho*u = sum_i(f_i * e_i)

Solid cells carry no fluid; every function taking a ``solid`` mask
reports zero density and velocity there.
"""

import numpy as np
from numba import njit, prange
from .lattice import EX, EY, Q, CS2


def compute_density(f):
    """
    Compute density field from distribution functions.

    rho = sum_i(f_i)

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)

    Returns
    -------
    rho : ndarray
        Density field, shape (ny, nx)
    """
    return np.sum(f, axis=0)


def compute_velocity(f, rho=None):
    """
    Compute velocity field from distribution functions.

    rho * u = sum_i(f_i * e_i)

    Cells with (near-)zero density get zero velocity.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    rho : ndarray, optional
        Density field, shape (ny, nx). If None, computed from f.

    Returns
    -------
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    """
    if rho is None:
        rho = compute_density(f)

    q, ny, nx = f.shape
    rho_ux = np.zeros((ny, nx), dtype=np.float64)
    rho_uy = np.zeros((ny, nx), dtype=np.float64)

    for i in range(Q):
        rho_ux += f[i] * EX[i]
        rho_uy += f[i] * EY[i]

    valid = np.abs(rho) > 1e-10
    rho_safe = np.where(valid, rho, 1.0)

    ux = np.where(valid, rho_ux / rho_safe, 0.0)
    uy = np.where(valid, rho_uy / rho_safe, 0.0)

    return ux, uy


def compute_macroscopic(f, solid=None):
    """
    Compute density and velocity from distribution functions.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    solid : ndarray, optional
        Boolean solid mask; solid cells report zeros

    Returns
    -------
    rho, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    """
    rho = compute_density(f)
    ux, uy = compute_velocity(f, rho)
    if solid is not None:
        rho[solid] = 0.0
        ux[solid] = 0.0
        uy[solid] = 0.0
    return rho, ux, uy


@njit(parallel=True, cache=True)
def compute_macroscopic_numba(f, solid, rho, ux, uy, ex, ey):
    """
    Numba-accelerated macroscopic quantity computation.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    rho, ux, uy : ndarray
        Output fields, shape (ny, nx)
    ex, ey : ndarray
        Lattice velocity components
    """
    q, ny, nx = f.shape

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                rho[j, i] = 0.0
                ux[j, i] = 0.0
                uy[j, i] = 0.0
                continue

            rho_local = 0.0
            rho_ux = 0.0
            rho_uy = 0.0

            for k in range(q):
                f_k = f[k, j, i]
                rho_local += f_k
                rho_ux += f_k * ex[k]
                rho_uy += f_k * ey[k]

            rho[j, i] = rho_local

            if abs(rho_local) > 1e-10:
                ux[j, i] = rho_ux / rho_local
                uy[j, i] = rho_uy / rho_local
            else:
                ux[j, i] = 0.0
                uy[j, i] = 0.0


def compute_macroscopic_fast(f, solid):
    """
    Fast macroscopic quantity computation using Numba.

    Same contract as :func:`compute_macroscopic` with a required mask.
    """
    q, ny, nx = f.shape
    rho = np.zeros((ny, nx), dtype=np.float64)
    ux = np.zeros((ny, nx), dtype=np.float64)
    uy = np.zeros((ny, nx), dtype=np.float64)

    ex = EX.astype(np.float64)
    ey = EY.astype(np.float64)

    compute_macroscopic_numba(f, np.ascontiguousarray(solid, dtype=np.bool_),
                              rho, ux, uy, ex, ey)

    return rho, ux, uy


def compute_vorticity(ux, uy, dx=1.0):
    """
    Compute vorticity field using central differences.

    omega = du_y/dx - du_x/dy

    The outermost rows and columns have no neighbour on one side and
    are left at zero.

    Parameters
    ----------
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    dx : float
        Grid spacing (default 1.0 in lattice units)

    Returns
    -------
    vorticity : ndarray
        Vorticity field, shape (ny, nx)
    """
    curl = np.zeros_like(ux, dtype=np.float64)

    duy_dx = (uy[1:-1, 2:] - uy[1:-1, :-2]) / (2.0 * dx)
    dux_dy = (ux[2:, 1:-1] - ux[:-2, 1:-1]) / (2.0 * dx)

    curl[1:-1, 1:-1] = duy_dx - dux_dy
    return curl


def compute_pressure(rho, cs2=CS2):
    """
    Compute pressure field from density.

    Lattice equation of state: p = rho * c_s^2 = rho / 3
    """
    return rho * cs2


def compute_velocity_magnitude(ux, uy):
    """
    Compute velocity magnitude field.

    |u| = sqrt(ux^2 + uy^2)
    """
    return np.sqrt(ux * ux + uy * uy)
