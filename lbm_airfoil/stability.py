"""
Stability Guard

Explicit LBM integration is only conditionally stable. Before collision
each fluid cell is checked and non-physical states are repaired in
place so that a single bad cell never poisons the whole grid:

    - density below the floor, or any non-finite moment: the cell is
      reset to equilibrium at rest with the reference density
    - speed above ``max_speed``: the velocity is rescaled to
      ``max_speed`` keeping its direction

Every repaired cell increments a counter. The counter is the only way
divergence is reported; nothing is raised mid-step.
"""

import logging

import numpy as np

from .config import StabilityConfig
from .equilibrium import equilibrium_single_site

logger = logging.getLogger(__name__)


class StabilityGuard:
    """
    Per-cell safeguard with a cumulative correction counter.

    Parameters
    ----------
    config : StabilityConfig, optional
        Thresholds; defaults are used when omitted
    """

    def __init__(self, config=None):
        self.config = config if config is not None else StabilityConfig()
        self.corrections = 0
        self.last_corrections = 0
        self._reset_state = equilibrium_single_site(self.config.reference_density, 0.0, 0.0)

    def reset_counter(self):
        self.corrections = 0
        self.last_corrections = 0

    def apply(self, f, rho, ux, uy, solid):
        """
        Repair non-physical cells in place.

        Parameters
        ----------
        f : ndarray
            Populations, shape (Q, ny, nx). Reset cells are overwritten.
        rho, ux, uy : ndarray
            Macroscopic fields computed from ``f``, shape (ny, nx).
            Modified in place.
        solid : ndarray
            Boolean solid mask; solid cells are never touched

        Returns
        -------
        count : int
            Number of cells corrected in this call
        """
        cfg = self.config
        if not cfg.enabled:
            self.last_corrections = 0
            return 0

        fluid = ~solid

        with np.errstate(invalid='ignore'):
            corrupt = ~(np.isfinite(rho) & np.isfinite(ux) & np.isfinite(uy))
            collapsed = rho < cfg.density_floor
        reset = fluid & (corrupt | collapsed)

        n_reset = int(np.count_nonzero(reset))
        if n_reset:
            f[:, reset] = self._reset_state[:, None]
            rho[reset] = cfg.reference_density
            ux[reset] = 0.0
            uy[reset] = 0.0

        speed = np.sqrt(ux * ux + uy * uy)
        fast = fluid & (speed > cfg.max_speed)

        n_fast = int(np.count_nonzero(fast))
        if n_fast:
            scale = cfg.max_speed / speed[fast]
            ux[fast] *= scale
            uy[fast] *= scale

        count = n_reset + n_fast
        if count:
            if self.corrections == 0:
                logger.warning(
                    "Stability guard engaged: %d density resets, %d speed clamps",
                    n_reset, n_fast
                )
            else:
                logger.debug("Stability guard: %d resets, %d clamps", n_reset, n_fast)

        self.last_corrections = count
        self.corrections += count
        return count

    def relaxation_field(self, omega, ux, uy):
        """
        Locally damped relaxation rate.

        omega_local = omega * (1 - a * min(|u| / u_max, 1)^2)

        With ``adaptive_damping`` a == 0 the scalar ``omega`` is returned
        unchanged.
        """
        a = self.config.adaptive_damping
        if a == 0.0 or not self.config.enabled:
            return omega

        ratio = np.sqrt(ux * ux + uy * uy) / self.config.max_speed
        ratio = np.minimum(ratio, 1.0)
        return omega * (1.0 - a * ratio * ratio)
