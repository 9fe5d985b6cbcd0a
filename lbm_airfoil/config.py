"""
Pydantic schemas for solver configuration.

Everything the host can tune lives here. Out-of-range values fail at
construction time with a ``pydantic.ValidationError`` (a ``ValueError``),
so a bad configuration never reaches the lattice.
"""

import logging
import math
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Smallest lattice the visualizer will run on, in cells per side
MIN_GRID_SIZE = 50

# Angle change applied by one press of the site's angle buttons (radians)
ANGLE_STEP = 0.05


class AirfoilParams(BaseModel):
    """NACA 4-digit airfoil placed in the tunnel."""
    chord_fraction: float = Field(
        default=1.0 / 6.0, gt=0.0, le=1.0,
        description="Chord length as a fraction of the grid width"
    )
    thickness: float = Field(
        default=0.12, gt=0.0, le=0.5,
        description="Maximum thickness as a fraction of chord (NACA 'tt')"
    )
    angle: float = Field(
        default=0.0,
        description="Angle of attack in radians; positive pitches the nose up"
    )
    camber: float = Field(
        default=0.0, ge=0.0, lt=0.1,
        description="Maximum camber as a fraction of chord (NACA 'm')"
    )
    camber_position: float = Field(
        default=0.4, ge=0.0, lt=1.0,
        description="Chordwise location of maximum camber (NACA 'p')"
    )
    center_x: Optional[float] = Field(
        default=None, description="Pivot x in cells (None: xdim // 3)"
    )
    center_y: Optional[float] = Field(
        default=None, description="Pivot y in cells (None: ydim // 2)"
    )
    pivot_fraction: float = Field(
        default=0.0, ge=0.0, le=1.0,
        description="Chord fraction pinned at the center and rotated about"
    )
    points: Optional[int] = Field(
        default=None, ge=16,
        description="Surface samples per side (None: twice the chord in cells)"
    )

    @field_validator('angle')
    @classmethod
    def finite_angle(cls, v):
        """Reject NaN/inf angles."""
        if not math.isfinite(v):
            raise ValueError("Angle of attack must be finite")
        return v

    def with_angle(self, angle):
        """Copy of these parameters at a new angle of attack."""
        return AirfoilParams.model_validate({**self.model_dump(), 'angle': angle})


class MRTRates(BaseModel):
    """Relaxation rates for the non-conserved, non-shear MRT moments."""
    s_e: float = Field(default=1.4, gt=0.0, lt=2.0, description="Energy moment")
    s_eps: float = Field(default=1.4, gt=0.0, lt=2.0, description="Energy-square moment")
    s_q: float = Field(default=1.2, gt=0.0, lt=2.0, description="Heat-flux moments")


class StabilityConfig(BaseModel):
    """Per-cell safeguards applied before collision."""
    enabled: bool = True
    density_floor: float = Field(default=0.1, gt=0.0, lt=1.0)
    max_speed: float = Field(default=0.4, gt=0.0, lt=0.6)
    reference_density: float = Field(default=1.0, gt=0.0)
    adaptive_damping: float = Field(
        default=0.0, ge=0.0, lt=1.0,
        description="Fractional reduction of omega as |u| approaches max_speed"
    )


class FlowConfig(BaseModel):
    """Flow parameters and solver feature switches."""
    flow_speed: float = Field(default=0.1, ge=0.0, lt=0.5, description="Inlet speed (lattice units)")
    flow_angle: float = Field(default=0.0, description="Inlet flow direction in radians")
    viscosity: float = Field(default=0.02, description="Kinematic viscosity (lattice units)")
    collision: Literal["bgk", "mrt"] = "bgk"
    bounce_back: Literal["plain", "interpolated"] = "plain"
    outlet: Literal["extrapolate", "convective"] = "extrapolate"
    free_slip: Literal["copy", "reflect"] = "copy"
    edges: Literal["tunnel", "periodic"] = "tunnel"
    initial_state: Literal["rest", "freestream"] = "rest"
    steps_per_frame: int = Field(default=10, ge=1, le=100)
    mrt: MRTRates = Field(default_factory=MRTRates)
    stability: StabilityConfig = Field(default_factory=StabilityConfig)

    @field_validator('viscosity')
    @classmethod
    def positive_viscosity(cls, v):
        """Viscosity must be positive and finite."""
        if not math.isfinite(v) or v <= 0.0:
            raise ValueError(f"viscosity must be > 0, got {v}")
        return v

    @field_validator('flow_angle')
    @classmethod
    def finite_flow_angle(cls, v):
        if not math.isfinite(v):
            raise ValueError("flow_angle must be finite")
        return v

    @model_validator(mode='after')
    def speed_below_guard(self):
        """The inlet itself must not trip the speed clamp."""
        if self.stability.enabled and self.flow_speed >= self.stability.max_speed:
            raise ValueError(
                f"flow_speed {self.flow_speed} must be below the stability "
                f"max_speed {self.stability.max_speed}"
            )
        return self

    @property
    def inlet_velocity(self) -> Tuple[float, float]:
        """Free-stream velocity components (ux, uy)."""
        return (self.flow_speed * math.cos(self.flow_angle),
                self.flow_speed * math.sin(self.flow_angle))


def validate_grid(xdim, ydim):
    """
    Check requested grid dimensions and apply the minimum size.

    Parameters
    ----------
    xdim, ydim : int
        Requested number of cells along x and y

    Returns
    -------
    xdim, ydim : int
        Dimensions raised to at least ``MIN_GRID_SIZE``

    Raises
    ------
    ConfigurationError
        If either dimension is not a positive integer
    """
    dims = []
    for name, value in (("xdim", xdim), ("ydim", ydim)):
        if isinstance(value, bool) or int(value) != value or value <= 0:
            raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        value = int(value)
        if value < MIN_GRID_SIZE:
            logger.info("%s=%d raised to minimum grid size %d", name, value, MIN_GRID_SIZE)
            value = MIN_GRID_SIZE
        dims.append(value)
    return dims[0], dims[1]


def grid_from_canvas(width, height, px_per_square=1):
    """
    Convert a canvas size in pixels to lattice dimensions.

    Each lattice cell covers ``px_per_square`` x ``px_per_square`` pixels.
    """
    if px_per_square < 1:
        raise ConfigurationError(f"px_per_square must be >= 1, got {px_per_square}")
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Canvas must have positive size, got {width}x{height}")
    return validate_grid(int(width // px_per_square) or 1, int(height // px_per_square) or 1)
