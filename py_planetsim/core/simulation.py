"""
Simulation driver.

Owns the mesh, the neighbor graph, the surface state and the lifeform
population, and advances all of them together one tick at a time.

All population mutation is serialized behind a single lock: a tick holds it
from start to finish, a user placement holds it for the insert only, so a
render/input thread can place agents or read snapshots while a simulation
thread is ticking.
"""

import itertools
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..config import settings
from ..utils.random import derive_prng
from .assets import AssetLoadError, LifeformAssets
from .climate import Climate, SimulationOptions, ThermalConstants
from .hydrology import Hydrology, HydrologyOptions
from .icosphere import IcosphereMesh, generate_icosphere
from .lifeform import Lifeform, LifeformKind, LifeformOptions, LifeformRecord, PopulationEvents
from .neighbor_graph import build_neighbor_graph, neighbors_of
from .surface import GenerationOptions, SimulationInvariantError, SurfaceState, initialize_surface

logger = structlog.get_logger()


@dataclass(frozen=True)
class SurfaceSnapshot:
    """Consistent copy of the simulation state taken between two ticks."""

    tick: int
    elevation: np.ndarray
    water_elevation: np.ndarray
    temperature: np.ndarray
    lifeforms: Tuple[LifeformRecord, ...]


def _frozen_copy(values: np.ndarray) -> np.ndarray:
    copy = values.copy()
    copy.flags.writeable = False
    return copy


class Simulation:
    """A planet and everything living on it."""

    def __init__(
        self,
        mesh: IcosphereMesh,
        neighbors: np.ndarray,
        surface: SurfaceState,
        radius: float,
        seed: str,
        thermal_constants: Optional[ThermalConstants] = None,
        hydrology_options: Optional[HydrologyOptions] = None,
        lifeform_options: Optional[LifeformOptions] = None,
        assets: Optional[LifeformAssets] = None,
    ):
        """
        Initialize the simulation from prebuilt parts; see generate().

        Args:
            mesh: Icosphere mesh
            neighbors: (N, 6) neighbor table of the mesh
            surface: Initial surface state
            radius: Planet radius in km
            seed: Master seed, used to derive lifeform random streams
            thermal_constants: Thermal model constants
            hydrology_options: Water model parameters
            lifeform_options: Lifeform behavior constants
            assets: Lifeform asset cache
        """
        self.mesh = mesh
        self.neighbors = neighbors
        self.surface = surface
        self.radius = radius
        self.seed = seed
        self.lifeform_options = lifeform_options or LifeformOptions()
        self.assets = assets or LifeformAssets()

        self.climate = Climate(surface, neighbors, radius, thermal_constants)
        self.hydrology = Hydrology(surface, neighbors, hydrology_options)

        self.tick_count = 0
        self._lifeforms: List[Lifeform] = []
        self._lifeform_ids = itertools.count()
        # Reentrant so lifeform steps can read the population during a tick
        self._population_lock = threading.RLock()
        self._surface_points: Optional[np.ndarray] = None
        self._halted_error: Optional[SimulationInvariantError] = None

    # --- Ticking ---

    def tick(self, solar_direction, options: Optional[SimulationOptions] = None) -> None:
        """
        Advance climate, hydrology and every lifeform by one step.

        Args:
            solar_direction: 3-vector pointing from the planet to the sun
            options: Tick parameters, defaults from the application settings

        Raises:
            SimulationInvariantError: The state became invalid; the simulation
                is halted and every later tick raises the same error
        """
        options = options or SimulationOptions.from_settings(settings)

        with self._population_lock:
            if self._halted_error is not None:
                raise self._halted_error

            try:
                self.climate.step(solar_direction, options)
                self.hydrology.step(options)
            except SimulationInvariantError as e:
                self._halted_error = e
                logger.critical(
                    "Simulation invariant violated",
                    error=type(e).__name__,
                    message=str(e),
                    tick=self.tick_count,
                    **e.context,
                )
                raise

            events = self._step_lifeforms(options)
            self._apply_population_events(events, options.game_time)
            self.tick_count += 1

    @property
    def halted(self) -> bool:
        return self._halted_error is not None

    @property
    def halted_error(self) -> Optional[SimulationInvariantError]:
        """The error that halted the simulation, if any."""
        return self._halted_error

    def _step_lifeforms(self, options: SimulationOptions) -> PopulationEvents:
        events = PopulationEvents()
        # Water does not move during the pass, so surface points are computed once
        self._surface_points = self.surface.surface_points()
        try:
            # The list is not resized during the pass; births and deaths are queued
            for index in range(len(self._lifeforms)):
                self._lifeforms[index].step(self, options, self.lifeform_options, events)
        finally:
            self._surface_points = None
        return events

    def _apply_population_events(self, events: PopulationEvents, game_time: float) -> None:
        if events.deaths:
            survivors = []
            for lifeform in self._lifeforms:
                cause = events.deaths.get(lifeform.id)
                if cause is None:
                    survivors.append(lifeform)
                else:
                    logger.info(
                        "Lifeform died",
                        id=lifeform.id,
                        cause=cause,
                        age=lifeform.age(game_time),
                    )
            self._lifeforms[:] = survivors

        for child in events.births:
            try:
                self._lifeforms.append(child)
            except MemoryError:
                logger.warning("Newborn lifeform dropped", id=child.id)

    # --- Mesh queries ---

    def _get_surface_points(self) -> np.ndarray:
        points = self._surface_points
        if points is None:
            points = self.surface.surface_points()
        return points

    def nearest_vertex_to(self, position) -> int:
        """
        Id of the vertex whose surface point is closest to a 3D position.

        Linear scan; the first vertex wins ties.
        """
        points = self._get_surface_points()
        offsets = points - np.asarray(position, dtype=np.float64)
        return int(np.argmin(np.einsum("ij,ij->i", offsets, offsets)))

    def neighbors_of(self, vertex_id: int) -> List[int]:
        """Neighbor ids of a vertex (5 for pentagons, 6 otherwise)."""
        return neighbors_of(self.neighbors, vertex_id)

    def surface_point(self, vertex_id: int) -> np.ndarray:
        """Position of the water/ground surface above a vertex, km."""
        return self._get_surface_points()[vertex_id].copy()

    # --- Read-only accessors ---

    @property
    def n_vertices(self) -> int:
        return self.surface.n_vertices

    @property
    def elevation(self) -> np.ndarray:
        with self._population_lock:
            return _frozen_copy(self.surface.elevation)

    @property
    def water_elevation(self) -> np.ndarray:
        with self._population_lock:
            return _frozen_copy(self.surface.water_elevation)

    @property
    def temperature(self) -> np.ndarray:
        with self._population_lock:
            return _frozen_copy(self.surface.temperature)

    @property
    def surface_points(self) -> np.ndarray:
        with self._population_lock:
            return _frozen_copy(self._get_surface_points())

    def vertex_buffer(self) -> np.ndarray:
        """Interleaved x, y, z, temperature, water rows for rendering."""
        with self._population_lock:
            return self.surface.vertex_buffer()

    @property
    def lifeforms(self) -> Tuple[Lifeform, ...]:
        with self._population_lock:
            return tuple(self._lifeforms)

    def get_lifeform(self, lifeform_id: int) -> Optional[Lifeform]:
        with self._population_lock:
            for lifeform in self._lifeforms:
                if lifeform.id == lifeform_id:
                    return lifeform
        return None

    def snapshot(self) -> SurfaceSnapshot:
        """Copy of the state, guaranteed not to be taken mid-tick."""
        with self._population_lock:
            return SurfaceSnapshot(
                tick=self.tick_count,
                elevation=self.surface.elevation.copy(),
                water_elevation=self.surface.water_elevation.copy(),
                temperature=self.surface.temperature.copy(),
                lifeforms=tuple(lifeform.record() for lifeform in self._lifeforms),
            )

    def statistics(self) -> Dict[str, float]:
        """Aggregate readouts for the UI."""
        with self._population_lock:
            temperature = self.surface.temperature
            return {
                "tick": self.tick_count,
                "total_water": self.surface.total_water(),
                "mean_temperature": float(temperature.mean()),
                "min_temperature": float(temperature.min()),
                "max_temperature": float(temperature.max()),
                "population": len(self._lifeforms),
            }

    # --- Population ---

    def spawn_lifeform(self, kind: LifeformKind, position, game_time: float) -> Lifeform:
        """
        Create a lifeform with its own random stream, without inserting it.
        """
        lifeform_id = next(self._lifeform_ids)
        return Lifeform(
            id=lifeform_id,
            kind=kind,
            position=position,
            time_born=game_time,
            prng=derive_prng(self.seed, "lifeform", lifeform_id),
            attractiveness_threshold=self.lifeform_options.initial_threshold,
        )

    def place_lifeform(self, kind: LifeformKind, position, game_time: float) -> Optional[int]:
        """
        Add a user-placed lifeform to the population.

        Args:
            kind: Species to place
            position: 3D position in km
            game_time: Current game time (birth time of the lifeform)

        Returns:
            Id of the new lifeform, or None if it could not be stored

        Raises:
            AssetLoadError: The kind's asset is missing; nothing was placed
        """
        try:
            self.assets.ensure_loaded(kind)
        except AssetLoadError as e:
            logger.error(
                "Lifeform placement aborted",
                kind=kind.value,
                path=str(e.path),
                reason=e.reason,
            )
            raise

        lifeform = self.spawn_lifeform(kind, position, game_time)
        with self._population_lock:
            try:
                self._lifeforms.append(lifeform)
            except MemoryError:
                logger.warning("Placed lifeform dropped", id=lifeform.id)
                return None

        logger.info("Lifeform placed", id=lifeform.id, kind=kind.value, game_time=game_time)
        return lifeform.id


def generate(
    subdivisions: Optional[int] = None,
    radius: Optional[float] = None,
    seed: Optional[str] = None,
    generation_options: Optional[GenerationOptions] = None,
    thermal_constants: Optional[ThermalConstants] = None,
    hydrology_options: Optional[HydrologyOptions] = None,
    lifeform_options: Optional[LifeformOptions] = None,
    assets_dir: Optional[str] = None,
) -> Simulation:
    """
    Build a planet: mesh, neighbor graph and initial surface.

    Unset arguments fall back to the application settings.

    Args:
        subdivisions: Icosphere depth
        radius: Planet radius in km
        seed: Master seed
        generation_options: Noise parameters of the initial surface
        thermal_constants: Thermal model constants
        hydrology_options: Water model parameters
        lifeform_options: Lifeform behavior constants
        assets_dir: Root of lifeform assets; None runs headless

    Returns:
        Simulation ready to tick
    """
    subdivisions = settings.subdivisions if subdivisions is None else subdivisions
    radius = settings.radius_km if radius is None else radius
    seed = settings.seed if seed is None else seed
    assets_dir = settings.assets_dir if assets_dir is None else assets_dir

    logger.info("Generating planet", subdivisions=subdivisions, radius=radius, seed=seed)

    mesh = generate_icosphere(subdivisions)
    neighbors = build_neighbor_graph(mesh.triangles, mesh.n_vertices)
    surface = initialize_surface(mesh.vertices, radius, seed, generation_options)

    return Simulation(
        mesh=mesh,
        neighbors=neighbors,
        surface=surface,
        radius=radius,
        seed=seed,
        thermal_constants=thermal_constants,
        hydrology_options=hydrology_options,
        lifeform_options=lifeform_options,
        assets=LifeformAssets(assets_dir),
    )
