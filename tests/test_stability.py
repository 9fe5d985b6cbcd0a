"""
Tests for the stability guard.

A single corrupt cell must be repaired and counted without affecting
its neighbours, and a healthy field must pass through untouched.
"""

import logging

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_airfoil.config import StabilityConfig
from lbm_airfoil.equilibrium import compute_equilibrium, equilibrium_single_site
from lbm_airfoil.grid import Lattice
from lbm_airfoil.collision import collide
from lbm_airfoil.observables import compute_macroscopic
from lbm_airfoil.stability import StabilityGuard


@pytest.fixture
def healthy():
    """Uniform flow at equilibrium on a 50x50 grid."""
    lat = Lattice(50, 50)
    lat.fill_equilibrium(0.1, 0.0)
    return lat


def guard_pass(guard, lat):
    rho, ux, uy = compute_macroscopic(lat.f, lat.solid)
    count = guard.apply(lat.f, rho, ux, uy, lat.solid)
    return count, rho, ux, uy


class TestStabilityGuard:

    def test_healthy_field_untouched(self, healthy):
        guard = StabilityGuard()
        before = healthy.f.copy()

        count, _, _, _ = guard_pass(guard, healthy)

        assert count == 0
        assert guard.corrections == 0
        np.testing.assert_array_equal(healthy.f, before)

    def test_nan_cell_reset(self, healthy):
        guard = StabilityGuard()
        healthy.f[:, 10, 20] = np.nan

        count, rho, ux, uy = guard_pass(guard, healthy)

        assert count == 1
        np.testing.assert_allclose(healthy.f[:, 10, 20], equilibrium_single_site(1.0, 0.0, 0.0))
        assert rho[10, 20] == 1.0
        assert ux[10, 20] == 0.0 and uy[10, 20] == 0.0
        assert np.all(np.isfinite(healthy.f))

    def test_neighbours_not_affected(self, healthy):
        guard = StabilityGuard()
        neighbour = healthy.f[:, 10, 21].copy()
        healthy.f[:, 10, 20] = np.inf

        guard_pass(guard, healthy)

        np.testing.assert_array_equal(healthy.f[:, 10, 21], neighbour)

    def test_density_floor(self, healthy):
        guard = StabilityGuard(StabilityConfig(density_floor=0.2))
        healthy.f[:, 5, 5] *= 0.1

        count, rho, _, _ = guard_pass(guard, healthy)

        assert count == 1
        assert rho[5, 5] == 1.0
        assert np.isclose(healthy.f[:, 5, 5].sum(), 1.0)

    def test_speed_clamp_keeps_direction(self, healthy):
        guard = StabilityGuard(StabilityConfig(max_speed=0.3))
        healthy.f[:, 7, 7] = equilibrium_single_site(1.0, 0.4, 0.3)

        count, rho, ux, uy = guard_pass(guard, healthy)

        assert count == 1
        assert np.isclose(np.hypot(ux[7, 7], uy[7, 7]), 0.3)
        assert np.isclose(ux[7, 7] / uy[7, 7], 0.4 / 0.3)

    def test_solid_cells_ignored(self, healthy):
        guard = StabilityGuard()
        solid = np.zeros(healthy.shape, dtype=bool)
        solid[20:22, 20:22] = True
        healthy.set_solid(solid)

        count, _, _, _ = guard_pass(guard, healthy)

        assert count == 0

    def test_counter_accumulates(self, healthy):
        guard = StabilityGuard()

        healthy.f[:, 3, 3] = np.nan
        guard_pass(guard, healthy)
        healthy.f[:, 4, 4] = np.nan
        healthy.f[:, 4, 5] = np.nan
        guard_pass(guard, healthy)

        assert guard.corrections == 3
        assert guard.last_corrections == 2

        guard.reset_counter()
        assert guard.corrections == 0

    def test_disabled_guard(self, healthy):
        guard = StabilityGuard(StabilityConfig(enabled=False))
        healthy.f[:, 3, 3] = np.nan

        count, _, _, _ = guard_pass(guard, healthy)

        assert count == 0
        assert np.all(np.isnan(healthy.f[:, 3, 3]))

    def test_first_correction_logs_warning(self, healthy, caplog):
        guard = StabilityGuard()
        healthy.f[:, 3, 3] = np.nan

        with caplog.at_level(logging.WARNING, logger="lbm_airfoil.stability"):
            guard_pass(guard, healthy)

        assert any("Stability guard engaged" in r.message for r in caplog.records)


class TestCollisionWithGuard:

    def test_collision_repairs_and_continues(self, healthy):
        guard = StabilityGuard()
        healthy.f[:, 25, 25] = np.nan

        corrections = collide(healthy, 1.5, guard=guard)

        assert corrections == 1
        assert np.all(np.isfinite(healthy.f))
        assert healthy.rho[25, 25] == 1.0

    def test_near_vacuum_cell(self, healthy):
        """A density of 1e-6 is reset instead of dividing into inf/NaN."""
        guard = StabilityGuard()
        healthy.f[:, 30, 12] = equilibrium_single_site(1e-6, 0.0, 0.0)
        healthy.f[1, 30, 12] += 1e-7

        corrections = collide(healthy, 1.5, guard=guard)

        assert corrections == 1
        assert guard.corrections == 1
        assert healthy.rho[30, 12] == 1.0
        assert np.all(np.isfinite(healthy.ux)) and np.all(np.isfinite(healthy.uy))
        assert np.isclose(healthy.f[:, 30, 12].sum(), 1.0)

    def test_adaptive_relaxation(self):
        guard = StabilityGuard(StabilityConfig(adaptive_damping=0.5, max_speed=0.4))
        ux = np.array([[0.0, 0.2, 0.4, 0.8]])
        uy = np.zeros_like(ux)

        omega = guard.relaxation_field(1.8, ux, uy)

        np.testing.assert_allclose(omega, 1.8 * (1.0 - 0.5 * np.array([[0.0, 0.25, 1.0, 1.0]])))

    def test_no_damping_returns_scalar(self):
        guard = StabilityGuard()

        assert guard.relaxation_field(1.8, np.zeros((2, 2)), np.zeros((2, 2))) == 1.8


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
