"""
Simulation Session

One visualization instance: the lattice, the current airfoil, the flow
parameters, a running flag and accumulated diagnostics.

Each :meth:`Session.step` runs edge conditions, collision (with the
stability guard), streaming and bounce-back over the whole grid before
returning, so the fields read afterwards always belong to one complete
time step. The host drives the loop; nothing runs in the background.
"""

import logging
import math
import warnings

from .boundary import (
    EdgeBoundaries,
    apply_bounce_back,
    apply_interpolated_bounce_back,
    bounce_back_links,
    interpolation_eligible,
)
from .collision import collide, omega_from_viscosity
from .config import ANGLE_STEP, AirfoilParams, FlowConfig
from .diagnostics import compute_diagnostics as _compute_diagnostics
from .diagnostics import reynolds_number
from .geometry import generate_airfoil
from .grid import Lattice
from .stability import StabilityGuard
from .streaming import stream

logger = logging.getLogger(__name__)

# Mach number above which compressibility errors become visible
MACH_WARN = 0.3


class Session:
    """
    Airfoil wind-tunnel simulation.

    Parameters
    ----------
    xdim, ydim : int
        Grid dimensions in cells
    flow : FlowConfig, optional
        Flow parameters and solver switches
    airfoil : AirfoilParams, optional
        Immersed body; None runs an empty tunnel

    Raises
    ------
    ConfigurationError
        For invalid grid dimensions or viscosity
    """

    def __init__(self, xdim, ydim, flow=None, airfoil=None):
        self.flow = flow if flow is not None else FlowConfig()
        self.airfoil = None

        self.omega = omega_from_viscosity(self.flow.viscosity)
        self.mach = self.flow.flow_speed * math.sqrt(3.0)
        if self.mach > MACH_WARN:
            warnings.warn(
                f"Ma = {self.mach:.3f} > {MACH_WARN}, compressibility effects "
                f"will distort the flow"
            )

        self.guard = StabilityGuard(self.flow.stability)
        self.running = True
        self.step_count = 0
        self.last_step_corrections = 0
        self.geometry = None
        self._rebuilding = False

        self._allocate(xdim, ydim, airfoil)

        logger.info(
            "Session created: %dx%d, u=%.4f, angle=%.4f, nu=%.5f, omega=%.4f, collision=%s",
            self.lattice.xdim, self.lattice.ydim, self.flow.flow_speed,
            self.flow.flow_angle, self.flow.viscosity, self.omega, self.flow.collision
        )

    # Construction

    def _allocate(self, xdim, ydim, airfoil):
        """
        Build a fresh lattice, edge conditions, fluid state and body.

        Everything is built aside and only swapped in once the geometry
        has been generated, so a rejected grid or airfoil leaves the
        current session untouched.
        """
        self._rebuilding = True
        try:
            lat = Lattice(xdim, ydim)
            periodic = self.flow.edges == "periodic"

            if periodic:
                edges = None
            else:
                edges = EdgeBoundaries(
                    self.flow.flow_speed,
                    self.flow.flow_angle,
                    outlet=self.flow.outlet,
                    free_slip=self.flow.free_slip,
                    rho_inlet=self.flow.stability.reference_density,
                )

            if self.flow.initial_state == "freestream":
                ux0, uy0 = self.flow.inlet_velocity
            else:
                ux0, uy0 = 0.0, 0.0

            geometry = None
            if airfoil is not None:
                geometry = generate_airfoil(
                    airfoil, lat.xdim, lat.ydim,
                    with_distance=self.flow.bounce_back == "interpolated",
                )
                lat.set_solid(geometry.solid, geometry.distance)
            lat.fill_equilibrium(ux0, uy0, self.flow.stability.reference_density)

            links = bounce_back_links(lat.solid, periodic)
            if self.flow.bounce_back == "interpolated":
                eligible = interpolation_eligible(lat.solid, links, periodic)
            else:
                eligible = None
        finally:
            self._rebuilding = False

        self.lattice = lat
        self.periodic = periodic
        self.edges = edges
        self.airfoil = airfoil
        self.geometry = geometry
        self.links = links
        self.has_body = bool(links.any())
        self.eligible = eligible
        self.step_count = 0

    # Time stepping

    def step(self):
        """
        Advance one lattice time step.

        Order: edge conditions, collision (with stability guard),
        streaming, bounce-back.

        Returns
        -------
        corrections : int
            Cells repaired by the stability guard during this step
        """
        if self._rebuilding:
            raise RuntimeError("Cannot step while the geometry is being rebuilt")

        lat = self.lattice

        if self.edges is not None:
            self.edges.apply(lat.f)
            lat.zero_solids()

        corrections = collide(
            lat, self.omega,
            guard=self.guard,
            model=self.flow.collision,
            mrt_rates=self.flow.mrt,
        )

        f_pre = lat.f
        f_new = stream(f_pre, periodic=self.periodic)

        if self.has_body:
            if self.eligible is not None:
                apply_interpolated_bounce_back(
                    f_new, f_pre, lat.solid, self.links, self.eligible, lat.distance
                )
            else:
                apply_bounce_back(f_new, f_pre, lat.solid, self.links)

        lat.f = f_new
        self.step_count += 1
        self.last_step_corrections = corrections
        return corrections

    def run(self, num_steps):
        """
        Run several steps back to back.

        Returns
        -------
        corrections : int
            Stability corrections accumulated over these steps
        """
        total = 0
        for _ in range(num_steps):
            total += self.step()
        return total

    def advance_frame(self):
        """
        One animation frame: ``steps_per_frame`` steps while running.

        Returns the number of steps taken (0 when paused).
        """
        if not self.running:
            return 0
        self.run(self.flow.steps_per_frame)
        return self.flow.steps_per_frame

    def pause(self):
        self.running = False

    def resume(self):
        self.running = True

    # Geometry and grid changes

    def update_angle_of_attack(self, angle):
        """
        Regenerate the airfoil at a new angle and reset all fields.

        Must be called between steps. The result depends only on the
        configuration, so repeating a call with the same angle gives
        identical state.

        Raises
        ------
        ValueError
            For a non-finite angle (``pydantic.ValidationError``); the
            session keeps its previous body and fields
        """
        if self.airfoil is None:
            airfoil = AirfoilParams(angle=angle)
        else:
            airfoil = self.airfoil.with_angle(angle)
        self._allocate(self.lattice.xdim, self.lattice.ydim, airfoil)
        logger.info("Angle of attack set to %.4f rad", airfoil.angle)

    def nudge_angle(self, delta=ANGLE_STEP):
        """Change the angle of attack by ``delta`` radians."""
        current = self.airfoil.angle if self.airfoil is not None else 0.0
        self.update_angle_of_attack(current + delta)

    def resize(self, xdim, ydim):
        """
        Reallocate the grid at a new size and reinitialize everything.

        Existing state is discarded, not resampled.
        If the new grid is rejected, or the airfoil no longer fits on
        it, the exception propagates and the old lattice stays in place.
        """
        self._allocate(xdim, ydim, self.airfoil)
        logger.info("Lattice resized to %dx%d", self.lattice.xdim, self.lattice.ydim)

    # Diagnostics and accessors

    @property
    def chord_length(self):
        return self.geometry.chord_length if self.geometry is not None else 0

    @property
    def reynolds(self):
        return reynolds_number(self.chord_length, self.flow.flow_speed, self.flow.viscosity)

    @property
    def stability_corrections(self):
        """Cumulative number of cells repaired by the stability guard."""
        return self.guard.corrections

    def compute_diagnostics(self):
        """
        Speed, curl and pressure fields plus Reynolds number and
        lift/drag coefficients for the current state.
        """
        diagnostics = _compute_diagnostics(
            self.lattice,
            self.flow.flow_speed,
            self.flow.flow_angle,
            self.flow.viscosity,
            self.chord_length,
            self.flow.stability.reference_density,
        )
        diagnostics['stability_corrections'] = self.stability_corrections
        return diagnostics

    @property
    def xdim(self):
        return self.lattice.xdim

    @property
    def ydim(self):
        return self.lattice.ydim

    @property
    def density(self):
        return self.lattice.density

    @property
    def velocity_x(self):
        return self.lattice.velocity_x

    @property
    def velocity_y(self):
        return self.lattice.velocity_y

    @property
    def is_solid(self):
        return self.lattice.is_solid


def initialize(grid_width, grid_height, flow_speed=0.1, flow_angle=0.0,
               viscosity=0.02, airfoil_params=None, **options):
    """
    Create a simulation session.

    Parameters
    ----------
    grid_width, grid_height : int
        Grid dimensions in cells
    flow_speed : float
        Inlet speed in lattice units
    flow_angle : float
        Inlet direction in radians
    viscosity : float
        Kinematic viscosity in lattice units
    airfoil_params : AirfoilParams or dict, optional
        Airfoil description; defaults to a NACA 0012 at zero angle
    **options
        Further :class:`FlowConfig` fields (collision, bounce_back, ...)

    Returns
    -------
    session : Session
    """
    flow = FlowConfig(flow_speed=flow_speed, flow_angle=flow_angle,
                      viscosity=viscosity, **options)
    if airfoil_params is None:
        airfoil_params = AirfoilParams()
    elif isinstance(airfoil_params, dict):
        airfoil_params = AirfoilParams(**airfoil_params)
    return Session(grid_width, grid_height, flow, airfoil_params)


def step(session):
    """Advance ``session`` by one time step."""
    return session.step()


def update_angle_of_attack(session, angle):
    """Regenerate the airfoil of ``session`` at ``angle`` radians."""
    session.update_angle_of_attack(angle)


def compute_diagnostics(session):
    """Diagnostics dictionary of ``session``."""
    return session.compute_diagnostics()


def resize(session, grid_width, grid_height):
    """Reallocate ``session`` at a new grid size."""
    session.resize(grid_width, grid_height)
