"""
Tests for the simulation session.

End-to-end runs of the wind tunnel plus the host-facing operations:
angle changes, resizing, frame stepping and the read-only accessors.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_airfoil import (
    AirfoilParams,
    ConfigurationError,
    FlowConfig,
    GeometryError,
    Session,
    compute_diagnostics,
    grid_from_canvas,
    initialize,
    resize,
    step,
    update_angle_of_attack,
)
from lbm_airfoil.config import ANGLE_STEP, MIN_GRID_SIZE


@pytest.fixture
def tunnel():
    """100x60 tunnel, NACA 0012 with its leading edge at (33, 30)."""
    return initialize(100, 60, flow_speed=0.1, flow_angle=0.0, viscosity=0.02,
                      airfoil_params=AirfoilParams(center_x=33, center_y=30))


def wake_speed(session):
    ux = session.lattice.ux[25:36, 80:91]
    uy = session.lattice.uy[25:36, 80:91]
    return float(np.mean(np.sqrt(ux ** 2 + uy ** 2)))


class TestEndToEnd:

    def test_hundred_steps(self, tunnel):
        for _ in range(100):
            step(tunnel)

        assert np.all(np.isfinite(tunnel.lattice.f))
        assert np.all(np.isfinite(tunnel.density))
        assert np.all(np.isfinite(tunnel.velocity_x))
        assert np.all(np.isfinite(tunnel.velocity_y))
        assert wake_speed(tunnel) < 0.1
        assert tunnel.stability_corrections == 0
        assert tunnel.step_count == 100

    def test_inlet_drives_flow(self, tunnel):
        tunnel.run(60)

        # Near the inlet the fluid has picked up the free-stream speed
        assert np.mean(tunnel.lattice.ux[5:55, 2:6]) > 0.02

    def test_solids_stay_empty(self, tunnel):
        tunnel.run(30)

        solid = tunnel.lattice.solid
        assert np.all(tunnel.lattice.f[:, solid] == 0.0)
        assert np.all(tunnel.lattice.rho[solid] == 0.0)

    @pytest.mark.parametrize("options", [
        {"collision": "mrt"},
        {"bounce_back": "interpolated"},
        {"outlet": "convective", "free_slip": "reflect"},
        {"initial_state": "freestream"},
    ])
    def test_solver_variants_stay_finite(self, options):
        session = initialize(100, 60, 0.1, 0.0, 0.02, AirfoilParams(angle=0.1), **options)

        session.run(80)

        assert np.all(np.isfinite(session.lattice.f))
        assert np.all(session.lattice.rho[~session.lattice.solid] > 0.5)

    def test_vertical_flow(self):
        session = initialize(60, 100, 0.08, np.pi / 2, 0.02,
                             AirfoilParams(chord_fraction=0.3))

        session.run(40)

        assert session.edges.inlet == "bottom"
        assert np.all(np.isfinite(session.lattice.f))
        assert np.mean(session.lattice.uy[1:4, 5:55]) > 0.02


class TestAngleOfAttack:

    def test_idempotent_regeneration(self, tunnel):
        tunnel.run(20)

        update_angle_of_attack(tunnel, 0.1)
        first = (tunnel.lattice.solid.copy(), tunnel.lattice.f.copy(), tunnel.lattice.rho.copy())
        update_angle_of_attack(tunnel, 0.1)

        np.testing.assert_array_equal(tunnel.lattice.solid, first[0])
        np.testing.assert_array_equal(tunnel.lattice.f, first[1])
        np.testing.assert_array_equal(tunnel.lattice.rho, first[2])

    def test_solid_mask_persistence(self, tunnel):
        tunnel.run(20)

        update_angle_of_attack(tunnel, -0.2)

        lat = tunnel.lattice
        solid = lat.solid
        assert solid.any()
        assert np.all(lat.rho[solid] == 0.0)
        assert np.all(lat.ux[solid] == 0.0)
        assert np.all(lat.uy[solid] == 0.0)
        fluid = ~solid
        np.testing.assert_allclose(lat.f.sum(axis=0)[fluid], lat.rho[fluid], rtol=1e-13)

    def test_new_angle_changes_body(self, tunnel):
        before = tunnel.lattice.solid.copy()

        update_angle_of_attack(tunnel, 0.25)

        assert tunnel.airfoil.angle == 0.25
        assert tunnel.geometry.angle == 0.25
        assert not np.array_equal(tunnel.lattice.solid, before)

    def test_old_body_cells_become_fluid(self, tunnel):
        before = tunnel.lattice.solid.copy()

        update_angle_of_attack(tunnel, 0.4)

        freed = before & ~tunnel.lattice.solid
        assert freed.any()
        assert np.all(tunnel.lattice.rho[freed] > 0.0)

    def test_nudge_angle(self, tunnel):
        tunnel.nudge_angle()
        tunnel.nudge_angle()
        tunnel.nudge_angle(-ANGLE_STEP)

        assert np.isclose(tunnel.airfoil.angle, ANGLE_STEP)

    @pytest.mark.parametrize("angle", [float("nan"), float("inf")])
    def test_rejected_angle_keeps_session(self, tunnel, angle):
        """A non-finite angle fails validation before anything is rebuilt."""
        tunnel.run(10)
        params = tunnel.airfoil
        solid = tunnel.lattice.solid.copy()
        f = tunnel.lattice.f.copy()

        with pytest.raises(ValueError, match="finite"):
            update_angle_of_attack(tunnel, angle)

        assert tunnel.airfoil == params
        assert tunnel.step_count == 10
        np.testing.assert_array_equal(tunnel.lattice.solid, solid)
        np.testing.assert_array_equal(tunnel.geometry.solid, solid)
        np.testing.assert_array_equal(tunnel.lattice.f, f)
        tunnel.run(5)
        assert np.all(np.isfinite(tunnel.lattice.f))

    def test_with_angle_validates(self):
        with pytest.raises(ValueError):
            AirfoilParams().with_angle(float("nan"))
        assert AirfoilParams(thickness=0.08).with_angle(0.2).thickness == 0.08

    def test_step_refused_during_rebuild(self, tunnel):
        tunnel._rebuilding = True
        with pytest.raises(RuntimeError):
            tunnel.step()


class TestResize:

    def test_resize_reallocates(self, tunnel):
        tunnel.run(10)

        resize(tunnel, 150, 80)

        assert (tunnel.xdim, tunnel.ydim) == (150, 80)
        assert tunnel.density.shape == (150 * 80,)
        assert tunnel.is_solid.shape == (150 * 80,)
        assert tunnel.geometry.chord_length == 25
        assert tunnel.step_count == 0
        tunnel.run(5)
        assert np.all(np.isfinite(tunnel.lattice.f))

    def test_small_grid_raised_to_minimum(self, tunnel):
        resize(tunnel, 10, 20)

        assert (tunnel.xdim, tunnel.ydim) == (MIN_GRID_SIZE, MIN_GRID_SIZE)

    @pytest.mark.parametrize("dims", [(0, 60), (100, -5), (100.5, 60)])
    def test_invalid_dimensions(self, tunnel, dims):
        with pytest.raises(ConfigurationError):
            resize(tunnel, *dims)

    def test_rejected_resize_keeps_session(self):
        """An airfoil that no longer fits leaves the old grid in place."""
        session = initialize(200, 60, 0.1, 0.0, 0.02, {'chord_fraction': 0.008})
        session.run(5)
        solid = session.lattice.solid.copy()

        with pytest.raises(GeometryError):
            resize(session, 100, 60)

        assert (session.xdim, session.ydim) == (200, 60)
        assert session.links.shape == (9, 60, 200)
        assert session.step_count == 5
        np.testing.assert_array_equal(session.lattice.solid, solid)
        session.run(5)
        assert np.all(np.isfinite(session.lattice.f))

    def test_rejected_dimensions_keep_session(self, tunnel):
        tunnel.run(3)

        with pytest.raises(ConfigurationError):
            resize(tunnel, 0, 60)

        assert (tunnel.xdim, tunnel.ydim) == (100, 60)
        assert tunnel.step_count == 3
        tunnel.step()

    def test_canvas_sizing(self):
        assert grid_from_canvas(800, 480, px_per_square=4) == (200, 120)
        assert grid_from_canvas(120, 80, px_per_square=3) == (MIN_GRID_SIZE, MIN_GRID_SIZE)
        with pytest.raises(ConfigurationError):
            grid_from_canvas(800, 480, px_per_square=0)


class TestConfiguration:

    @pytest.mark.parametrize("viscosity", [0.0, -0.1])
    def test_invalid_viscosity(self, viscosity):
        with pytest.raises(ValueError):
            initialize(100, 60, 0.1, 0.0, viscosity)

    def test_speed_above_guard_limit(self):
        with pytest.raises(ValueError):
            initialize(100, 60, 0.45, 0.0, 0.02)

    def test_high_mach_warns(self):
        with pytest.warns(UserWarning, match="Ma"):
            initialize(100, 60, 0.2, 0.0, 0.02)

    def test_airfoil_params_from_dict(self):
        session = initialize(100, 60, airfoil_params={"thickness": 0.15, "angle": 0.05})

        assert session.airfoil.thickness == 0.15
        assert session.airfoil.angle == 0.05

    def test_unknown_option_rejected(self):
        with pytest.raises(ValueError):
            initialize(100, 60, collision="trt")

    def test_empty_tunnel(self):
        session = Session(80, 50, FlowConfig(), airfoil=None)

        assert not session.lattice.solid.any()
        assert session.reynolds == 0.0
        session.run(10)
        assert np.all(np.isfinite(session.lattice.f))


class TestHostInterface:

    def test_accessors_are_flat_and_read_only(self, tunnel):
        tunnel.run(5)

        for field in (tunnel.density, tunnel.velocity_x, tunnel.velocity_y, tunnel.is_solid):
            assert field.shape == (100 * 60,)
            with pytest.raises(ValueError):
                field[0] = 1

    def test_row_major_indexing(self, tunnel):
        lat = tunnel.lattice
        x, y = 40, 30

        assert tunnel.is_solid[lat.index(x, y)] == lat.solid[y, x]
        assert lat.coords(lat.index(x, y)) == (x, y)

    def test_rows_run_bottom_to_top(self):
        """Row 0 of the flat arrays is the bottom edge; a raised nose sits in higher rows."""
        session = initialize(120, 60, 0.1, 0.0, 0.02,
                             {'angle': 0.3, 'pivot_fraction': 0.5, 'center_y': 30})
        solid = session.is_solid.reshape(session.ydim, session.xdim)
        ys, xs = np.nonzero(solid)

        nose_rows = ys[xs == xs.min()]
        tail_rows = ys[xs == xs.max()]
        assert nose_rows.mean() > 30 > tail_rows.mean()

    def test_diagnostics(self, tunnel):
        tunnel.run(50)

        d = compute_diagnostics(tunnel)

        assert d['speed'].shape == (6000,)
        assert d['curl'].shape == (6000,)
        assert d['pressure'].shape == (6000,)
        assert np.isclose(d['reynolds'], 16 * 0.1 / 0.02)
        assert np.isfinite(d['lift']) and np.isfinite(d['drag'])
        assert d['stability_corrections'] == 0

    def test_pause_and_resume(self, tunnel):
        tunnel.pause()
        assert tunnel.advance_frame() == 0
        assert tunnel.step_count == 0

        tunnel.resume()
        assert tunnel.advance_frame() == tunnel.flow.steps_per_frame
        assert tunnel.step_count == tunnel.flow.steps_per_frame

    def test_last_step_corrections(self, tunnel):
        tunnel.step()
        assert tunnel.last_step_corrections == 0

        tunnel.lattice.f[:, 10, 70] = np.nan
        corrections = tunnel.step()

        assert corrections == 1
        assert tunnel.last_step_corrections == 1
        assert tunnel.stability_corrections == 1
        assert np.all(np.isfinite(tunnel.lattice.f))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
