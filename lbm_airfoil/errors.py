"""
Exception types raised by the solver core.

Only configuration-level problems propagate to the caller. Per-cell
numerical trouble is recovered inside the step by the stability guard.
"""


class LBMError(Exception):
    """Base class for solver errors."""


class ConfigurationError(LBMError, ValueError):
    """Invalid grid size, viscosity or relaxation rate."""


class GeometryError(LBMError, ValueError):
    """Degenerate immersed body (e.g. a chord shorter than one cell)."""
