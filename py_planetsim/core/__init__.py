"""
Core planet simulation functionality.
"""

from .icosphere import IcosphereMesh, generate_icosphere, expected_vertex_count
from .neighbor_graph import NO_NEIGHBOR, MeshTopologyError, build_neighbor_graph
from .surface import (
    GenerationOptions,
    SimulationInvariantError,
    SurfaceState,
    WaterInvariantError,
    initialize_surface,
)
from .climate import Climate, SimulationOptions, ThermalConstants
from .hydrology import Hydrology, HydrologyOptions
from .lifeform import (
    Gestating,
    Lifeform,
    LifeformKind,
    LifeformOptions,
    LifeformRecord,
    MovingToVertex,
    PopulationEvents,
    Wandering,
)
from .assets import AssetLoadError, LifeformAssets
from .simulation import Simulation, SurfaceSnapshot, generate

__all__ = ['IcosphereMesh', 'generate_icosphere', 'expected_vertex_count',
           'NO_NEIGHBOR', 'MeshTopologyError', 'build_neighbor_graph',
           'GenerationOptions', 'SimulationInvariantError', 'SurfaceState',
           'WaterInvariantError', 'initialize_surface',
           'Climate', 'SimulationOptions', 'ThermalConstants',
           'Hydrology', 'HydrologyOptions',
           'Gestating', 'Lifeform', 'LifeformKind', 'LifeformOptions', 'LifeformRecord',
           'MovingToVertex', 'PopulationEvents', 'Wandering',
           'AssetLoadError', 'LifeformAssets',
           'Simulation', 'SurfaceSnapshot', 'generate']
