"""Tests for water redistribution."""

import pytest
import numpy as np
from py_planetsim.core.climate import SimulationOptions
from py_planetsim.core.hydrology import Hydrology, HydrologyOptions
from py_planetsim.core.icosphere import generate_icosphere
from py_planetsim.core.neighbor_graph import build_neighbor_graph, neighbors_of
from py_planetsim.core.surface import SurfaceState, WaterInvariantError, initialize_surface

RADIUS = 100.0


class TestHydrology:
    """Test water flow."""

    @pytest.fixture
    def mesh(self):
        return generate_icosphere(2)

    @pytest.fixture
    def neighbors(self, mesh):
        return build_neighbor_graph(mesh.triangles, mesh.n_vertices)

    def make_surface(self, mesh, elevation=None, water=None, temperature=290.0):
        n = mesh.n_vertices
        return SurfaceState(
            directions=mesh.vertices,
            elevation=np.full(n, RADIUS) if elevation is None else elevation,
            water_elevation=np.zeros(n) if water is None else water,
            temperature=np.full(n, temperature),
        )

    @pytest.fixture
    def mountain(self, mesh):
        """Vertex 0 raised 10 km and holding the only water on the planet."""
        elevation = np.full(mesh.n_vertices, RADIUS)
        elevation[0] += 10.0
        water = np.zeros(mesh.n_vertices)
        water[0] = 1.0
        return elevation, water

    def test_water_conserved(self, mesh, neighbors):
        """Test that total water is unchanged by any number of passes."""
        surface = initialize_surface(mesh.vertices, RADIUS, "hydrology_test")
        surface.water_elevation += 0.5
        hydrology = Hydrology(surface, neighbors)
        total = surface.total_water()

        for _ in range(50):
            hydrology.relax()

        assert surface.total_water() == pytest.approx(total, rel=1e-9)

    @pytest.mark.parametrize("time_scale", [1.0, 5.0, 20.0])
    def test_water_stays_nonnegative(self, mesh, neighbors, time_scale):
        surface = initialize_surface(mesh.vertices, RADIUS, "hydrology_test")
        hydrology = Hydrology(surface, neighbors)

        for _ in range(20):
            hydrology.step(SimulationOptions(time_scale=time_scale))

        assert np.all(surface.water_elevation >= 0.0)

    def test_flows_downhill(self, mesh, neighbors, mountain):
        elevation, water = mountain
        surface = self.make_surface(mesh, elevation, water)
        hydrology = Hydrology(surface, neighbors)
        adjacent = neighbors_of(neighbors, 0)

        hydrology.relax()

        shared = 1.0 / 12.0 / 10.0
        per_neighbor = shared * 11.0 / 50.0
        assert surface.water_elevation[0] == pytest.approx(1.0 - len(adjacent) * per_neighbor)
        np.testing.assert_allclose(surface.water_elevation[adjacent], per_neighbor)
        others = [v for v in range(1, mesh.n_vertices) if v not in adjacent]
        assert np.all(surface.water_elevation[others] == 0.0)

    def test_share_is_capped(self, mesh, neighbors):
        """Test that a large height difference moves at most the full share."""
        elevation = np.full(mesh.n_vertices, RADIUS)
        elevation[0] += 100.0
        water = np.zeros(mesh.n_vertices)
        water[0] = 1.0
        surface = self.make_surface(mesh, elevation, water)

        Hydrology(surface, neighbors).relax()

        adjacent = neighbors_of(neighbors, 0)
        np.testing.assert_allclose(surface.water_elevation[adjacent], 1.0 / 12.0 / 10.0)

    def test_no_flow_uphill(self, mesh, neighbors):
        elevation = np.full(mesh.n_vertices, RADIUS)
        elevation[0] -= 10.0
        water = np.zeros(mesh.n_vertices)
        water[0] = 1.0
        surface = self.make_surface(mesh, elevation, water)

        Hydrology(surface, neighbors).relax()

        np.testing.assert_array_equal(surface.water_elevation, water)

    def test_level_surface_is_stable(self, mesh, neighbors):
        surface = self.make_surface(mesh, water=np.full(mesh.n_vertices, 2.0))

        Hydrology(surface, neighbors).step(SimulationOptions())

        np.testing.assert_array_equal(surface.water_elevation, 2.0)

    def test_step_runs_sub_iterations(self, mesh, neighbors, mountain):
        elevation, water = mountain
        stepped = self.make_surface(mesh, elevation, water.copy())
        relaxed = self.make_surface(mesh, elevation, water.copy())

        Hydrology(stepped, neighbors, HydrologyOptions(sub_iterations=3)).step(SimulationOptions())
        hydrology = Hydrology(relaxed, neighbors)
        for _ in range(3):
            hydrology.relax()

        np.testing.assert_allclose(stepped.water_elevation, relaxed.water_elevation)

    def test_negative_water_raises(self, mesh, neighbors):
        surface = self.make_surface(mesh, water=np.full(mesh.n_vertices, 1.0))
        hydrology = Hydrology(surface, neighbors)
        surface.water_elevation[3] = -0.5

        with pytest.raises(WaterInvariantError) as excinfo:
            hydrology.relax()

        assert excinfo.value.context["stage"] == "before_pass"
        assert excinfo.value.context["vertex"] == 3

    def test_frozen_water_stays(self, mesh, neighbors, mountain):
        elevation, water = mountain
        surface = self.make_surface(mesh, elevation, water.copy(), temperature=250.0)

        Hydrology(surface, neighbors, HydrologyOptions(freeze_water=True)).relax()

        np.testing.assert_array_equal(surface.water_elevation, water)

    def test_cold_water_flows_without_freezing(self, mesh, neighbors, mountain):
        elevation, water = mountain
        surface = self.make_surface(mesh, elevation, water.copy(), temperature=250.0)

        Hydrology(surface, neighbors).relax()

        assert surface.water_elevation[0] < 1.0
