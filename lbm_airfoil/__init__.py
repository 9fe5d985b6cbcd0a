"""
Lattice Boltzmann wind tunnel around a NACA airfoil.

D2Q9 solver with BGK/MRT collision, bounce-back on a rasterized
airfoil, inlet/outlet/free-slip edges, a per-cell stability guard and
flow diagnostics for an interactive visualization.
"""

from .config import (
    ANGLE_STEP,
    MIN_GRID_SIZE,
    AirfoilParams,
    FlowConfig,
    MRTRates,
    StabilityConfig,
    grid_from_canvas,
)
from .errors import ConfigurationError, GeometryError, LBMError
from .geometry import AirfoilGeometry, generate_airfoil
from .grid import Lattice
from .session import (
    Session,
    compute_diagnostics,
    initialize,
    resize,
    step,
    update_angle_of_attack,
)

__version__ = "0.1.0"

__all__ = [
    "ANGLE_STEP",
    "MIN_GRID_SIZE",
    "AirfoilGeometry",
    "AirfoilParams",
    "ConfigurationError",
    "FlowConfig",
    "GeometryError",
    "LBMError",
    "Lattice",
    "MRTRates",
    "Session",
    "StabilityConfig",
    "compute_diagnostics",
    "generate_airfoil",
    "grid_from_canvas",
    "initialize",
    "resize",
    "step",
    "update_angle_of_attack",
]
