"""Tests for the per-vertex surface state."""

import pytest
import numpy as np
from py_planetsim.core.icosphere import generate_icosphere
from py_planetsim.core.surface import (
    GenerationOptions, SurfaceState, WaterInvariantError, initialize_surface
)


class TestInitializeSurface:
    """Test initial surface generation."""

    @pytest.fixture
    def mesh(self):
        return generate_icosphere(3)

    @pytest.fixture
    def surface(self, mesh):
        return initialize_surface(mesh.vertices, 100.0, "surface_test")

    def test_shapes(self, mesh, surface):
        n = mesh.n_vertices
        assert surface.elevation.shape == (n,)
        assert surface.water_elevation.shape == (n,)
        assert surface.temperature.shape == (n,)

    def test_relief_bounds(self, surface):
        """Test that relief stays within a twentieth of the radius."""
        assert np.all(np.abs(surface.elevation - 100.0) <= 5.0)
        assert surface.elevation.std() > 0.0

    def test_basins_filled_to_sea_level(self, surface):
        """Test that water fills every basin exactly up to the radius."""
        water = surface.water_elevation
        submerged = water > 0

        assert np.all(water >= 0)
        assert np.any(submerged)
        np.testing.assert_allclose(surface.elevation[submerged] + water[submerged], 100.0)
        assert np.all(surface.elevation[~submerged] >= 100.0)

    def test_sea_level_offset(self, mesh):
        """Test that raising sea level adds water."""
        low = initialize_surface(mesh.vertices, 100.0, "surface_test")
        high = initialize_surface(
            mesh.vertices, 100.0, "surface_test", GenerationOptions(sea_level_offset_km=2.0)
        )

        assert high.total_water() > low.total_water()

    def test_temperature_range(self, surface):
        assert np.all(surface.temperature >= 0.0)
        assert np.all(surface.temperature <= 600.0)

    def test_deterministic(self, mesh):
        surface1 = initialize_surface(mesh.vertices, 100.0, "same")
        surface2 = initialize_surface(mesh.vertices, 100.0, "same")
        surface3 = initialize_surface(mesh.vertices, 100.0, "other")

        np.testing.assert_array_equal(surface1.elevation, surface2.elevation)
        np.testing.assert_array_equal(surface1.temperature, surface2.temperature)
        assert not np.array_equal(surface1.elevation, surface3.elevation)


class TestSurfaceState:
    """Test double buffering and invariant checks."""

    @pytest.fixture
    def surface(self):
        mesh = generate_icosphere(1)
        n = mesh.n_vertices
        return SurfaceState(
            directions=mesh.vertices,
            elevation=np.full(n, 100.0),
            water_elevation=np.full(n, 0.5),
            temperature=np.full(n, 280.0),
        )

    def test_scratch_buffers_allocated(self, surface):
        assert surface.new_temperature.shape == surface.temperature.shape
        assert surface.new_water_elevation.shape == surface.water_elevation.shape

    def test_swap_temperature(self, surface):
        live = surface.temperature
        scratch = surface.new_temperature

        surface.swap_temperature()

        assert surface.temperature is scratch
        assert surface.new_temperature is live

    def test_swap_water(self, surface):
        live = surface.water_elevation
        scratch = surface.new_water_elevation

        surface.swap_water()

        assert surface.water_elevation is scratch
        assert surface.new_water_elevation is live

    def test_negative_water_detected(self, surface):
        surface.water_elevation[7] = -0.25

        with pytest.raises(WaterInvariantError) as excinfo:
            surface.check_water()

        assert excinfo.value.context["vertex"] == 7
        assert excinfo.value.context["water_elevation"] == -0.25
        assert excinfo.value.context["stage"] == "live"

    def test_negative_water_rejected_on_construction(self):
        mesh = generate_icosphere(0)
        water = np.zeros(12)
        water[3] = -1.0

        with pytest.raises(WaterInvariantError):
            SurfaceState(mesh.vertices, np.full(12, 100.0), water, np.full(12, 280.0))

    def test_shape_mismatch(self):
        mesh = generate_icosphere(0)

        with pytest.raises(ValueError):
            SurfaceState(mesh.vertices, np.full(11, 100.0), np.zeros(12), np.full(12, 280.0))

    def test_surface_points(self, surface):
        points = surface.surface_points()

        np.testing.assert_allclose(np.linalg.norm(points, axis=1), 100.5)

    def test_vertex_buffer(self, surface):
        buffer = surface.vertex_buffer()

        assert buffer.shape == (surface.n_vertices, 5)
        assert buffer.dtype == np.float32
        np.testing.assert_allclose(buffer[:, 3], 280.0)
        np.testing.assert_allclose(buffer[:, 4], 0.5)

    def test_total_water(self, surface):
        assert surface.total_water() == pytest.approx(0.5 * surface.n_vertices)
