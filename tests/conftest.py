"""Shared fixtures for simulation tests."""

import numpy as np
import pytest

from py_planetsim.core.assets import LifeformAssets
from py_planetsim.core.climate import SimulationOptions
from py_planetsim.core.icosphere import generate_icosphere
from py_planetsim.core.neighbor_graph import build_neighbor_graph
from py_planetsim.core.simulation import Simulation
from py_planetsim.core.surface import SurfaceState


def build_simulation(
    subdivisions=2,
    radius=100.0,
    temperature=290.0,
    water=0.0,
    lifeform_options=None,
    hydrology_options=None,
    assets_dir=None,
):
    """Simulation on a perfectly round planet with uniform temperature and water."""
    mesh = generate_icosphere(subdivisions)
    neighbors = build_neighbor_graph(mesh.triangles, mesh.n_vertices)
    n = mesh.n_vertices
    surface = SurfaceState(
        directions=mesh.vertices,
        elevation=np.full(n, radius),
        water_elevation=np.full(n, water),
        temperature=np.full(n, temperature),
    )
    return Simulation(
        mesh,
        neighbors,
        surface,
        radius,
        seed="test",
        hydrology_options=hydrology_options,
        lifeform_options=lifeform_options,
        assets=LifeformAssets(assets_dir),
    )


@pytest.fixture
def make_simulation():
    """Factory for small controlled simulations."""
    return build_simulation


@pytest.fixture
def quiet_options():
    """Tick parameters under which temperatures barely move."""
    return SimulationOptions(solar_constant=0.0, delta_time=1e-6)
