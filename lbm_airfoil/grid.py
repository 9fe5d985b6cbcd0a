"""
Lattice Grid

Owns the discretized domain: D2Q9 populations, macroscopic fields and
the solid mask.

Populations use a Structure of Arrays layout ``f[k, y, x]``, so every
direction (and every macroscopic field) is a dense ``(ydim, xdim)``
array whose C-order flattening is the row-major index ``x + y * xdim``.
"""

import numpy as np

from .config import validate_grid
from .equilibrium import compute_equilibrium
from .lattice import Q


class Lattice:
    """
    D2Q9 lattice of ``xdim x ydim`` cells.

    Parameters
    ----------
    xdim, ydim : int
        Grid dimensions; raised to the minimum grid size if smaller

    Attributes
    ----------
    f : ndarray
        Populations, shape (Q, ydim, xdim)
    rho, ux, uy : ndarray
        Density and velocity, shape (ydim, xdim)
    solid : ndarray
        Boolean solid mask, shape (ydim, xdim)
    distance : ndarray
        Normalized distance to the nearest wall in [0, 1]; 1 far from
        any solid, 0 inside solids
    """

    def __init__(self, xdim, ydim):
        self.xdim, self.ydim = validate_grid(xdim, ydim)
        shape = (self.ydim, self.xdim)

        self.f = np.zeros((Q,) + shape, dtype=np.float64)
        self.rho = np.zeros(shape, dtype=np.float64)
        self.ux = np.zeros(shape, dtype=np.float64)
        self.uy = np.zeros(shape, dtype=np.float64)
        self.solid = np.zeros(shape, dtype=bool)
        self.distance = np.ones(shape, dtype=np.float64)

    @property
    def shape(self):
        return (self.ydim, self.xdim)

    @property
    def size(self):
        return self.xdim * self.ydim

    @property
    def fluid(self):
        """Boolean mask of fluid cells."""
        return ~self.solid

    def index(self, x, y):
        """Row-major flat index of cell (x, y)."""
        return x + y * self.xdim

    def coords(self, idx):
        """Inverse of :meth:`index`."""
        return idx % self.xdim, idx // self.xdim

    def fill_equilibrium(self, ux, uy, rho=1.0):
        """
        Initialize every fluid cell to equilibrium at a uniform state.

        Solid cells are left zeroed.
        """
        shape = self.shape
        rho_f = np.full(shape, rho, dtype=np.float64)
        ux_f = np.full(shape, ux, dtype=np.float64)
        uy_f = np.full(shape, uy, dtype=np.float64)

        self.f[:] = compute_equilibrium(rho_f, ux_f, uy_f)
        self.rho[:] = rho_f
        self.ux[:] = ux_f
        self.uy[:] = uy_f
        self.zero_solids()

    def set_solid(self, mask, distance=None):
        """
        Replace the solid mask (and optionally the distance field).

        The previous mask is discarded entirely; solid cells are zeroed.
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != self.shape:
            raise ValueError(f"Mask shape {mask.shape} does not match grid {self.shape}")
        self.solid[:] = mask
        if distance is None:
            self.distance[:] = np.where(mask, 0.0, 1.0)
        else:
            self.distance[:] = distance
        self.zero_solids()

    def zero_solids(self):
        """Zero populations and macroscopic fields in solid cells."""
        self.f[:, self.solid] = 0.0
        self.rho[self.solid] = 0.0
        self.ux[self.solid] = 0.0
        self.uy[self.solid] = 0.0

    def total_mass(self):
        """Sum of all populations over the grid."""
        return float(np.sum(self.f))

    # Flat row-major read-only views for the renderer; length xdim * ydim.
    # Index 0 is the bottom-left cell and y grows upward, so a canvas that
    # draws row 0 at the top must flip rows.

    @property
    def density(self):
        return _readonly(self.rho)

    @property
    def velocity_x(self):
        return _readonly(self.ux)

    @property
    def velocity_y(self):
        return _readonly(self.uy)

    @property
    def is_solid(self):
        return _readonly(self.solid)


def _readonly(field):
    view = field.ravel()
    view.flags.writeable = False
    return view
