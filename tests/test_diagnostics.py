"""
Tests for flow diagnostics.

Checks the derived fields against analytic flows and the sign
conventions of the pressure force.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_airfoil.lattice import CS2
from lbm_airfoil.grid import Lattice
from lbm_airfoil.observables import compute_vorticity, compute_velocity_magnitude
from lbm_airfoil.diagnostics import (
    compute_diagnostics,
    force_coefficients,
    pressure_force,
    reynolds_number,
)


class TestDerivedFields:

    def test_reynolds_number(self):
        assert np.isclose(reynolds_number(16, 0.1, 0.02), 80.0)

    def test_vorticity_of_solid_body_rotation(self):
        """u = (-y, x) has curl 2 everywhere in the interior."""
        ny, nx = 20, 30
        Y, X = np.mgrid[0:ny, 0:nx].astype(np.float64)
        ux, uy = -0.01 * Y, 0.01 * X

        curl = compute_vorticity(ux, uy)

        np.testing.assert_allclose(curl[1:-1, 1:-1], 0.02, rtol=1e-12)
        assert np.all(curl[0, :] == 0.0) and np.all(curl[:, -1] == 0.0)

    def test_vorticity_of_uniform_flow(self):
        curl = compute_vorticity(np.full((10, 10), 0.1), np.zeros((10, 10)))
        assert np.all(curl == 0.0)

    def test_speed(self):
        speed = compute_velocity_magnitude(np.array([0.3]), np.array([0.4]))
        assert np.isclose(speed[0], 0.5)


class TestPressureForce:

    @pytest.fixture
    def body(self):
        solid = np.zeros((50, 50), dtype=bool)
        solid[20:30, 20:30] = True
        return solid

    def test_uniform_pressure_gives_no_force(self, body):
        rho = np.full(body.shape, 1.03)
        fx, fy = pressure_force(rho, body)

        assert np.isclose(fx, 0.0, atol=1e-12)
        assert np.isclose(fy, 0.0, atol=1e-12)

    def test_high_pressure_upstream_pushes_downstream(self, body):
        rho = np.ones(body.shape)
        rho[:, :25] = 1.01

        fx, fy = pressure_force(rho, body)

        assert fx > 0.0
        assert np.isclose(fy, 0.0, atol=1e-12)

    def test_high_pressure_below_lifts(self, body):
        rho = np.ones(body.shape)
        rho[:25, :] = 1.01

        fx, fy = pressure_force(rho, body)

        assert fy > 0.0
        assert np.isclose(fx, 0.0, atol=1e-12)

    def test_coefficients_along_flow(self):
        drag, lift = force_coefficients(0.2, 0.4, 0.0, 0.1, 20.0)

        dynamic = 0.5 * 0.1 ** 2 * 20.0
        assert np.isclose(drag, 0.2 / dynamic)
        assert np.isclose(lift, 0.4 / dynamic)

    def test_coefficients_rotate_with_flow(self):
        """A force along the flow direction is pure drag."""
        angle = 0.3
        drag, lift = force_coefficients(np.cos(angle), np.sin(angle), angle, 0.1, 10.0)

        assert np.isclose(lift, 0.0, atol=1e-12)
        assert drag > 0.0

    def test_zero_speed(self):
        assert force_coefficients(1.0, 1.0, 0.0, 0.0, 10.0) == (0.0, 0.0)


class TestComputeDiagnostics:

    def test_flat_fields(self):
        lat = Lattice(60, 50)
        lat.fill_equilibrium(0.1, 0.0)
        solid = np.zeros(lat.shape, dtype=bool)
        solid[20:25, 20:30] = True
        lat.set_solid(solid)

        d = compute_diagnostics(lat, 0.1, 0.0, 0.02, 10)

        for key in ('speed', 'curl', 'pressure'):
            assert d[key].shape == (60 * 50,)
        assert np.isclose(d['speed'][lat.index(5, 5)], 0.1)
        assert d['speed'][lat.index(25, 22)] == 0.0
        assert np.isclose(d['pressure'][lat.index(5, 5)], CS2)
        assert np.isclose(d['reynolds'], 50.0)
        assert np.all(d['curl'][lat.is_solid] == 0.0)
        # Uniform free stream, no pressure difference around the body
        assert np.isclose(d['lift'], 0.0, atol=1e-12)
        assert np.isclose(d['drag'], 0.0, atol=1e-12)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
