"""
Lifeform agents and their behavior.

Each lifeform is a small state machine advanced once per tick:

- Wandering: react to the local temperature, court nearby partners, or
  stroll to a random dry neighbor vertex
- MovingToVertex(target): walk toward a vertex, then wander again
- Gestating(since): give birth once the gestation period is over

Agents read the planet's surface state and the population, and mutate
other agents directly (courtship), but never the population list itself:
births and deaths are queued in PopulationEvents and applied by the
simulation once every agent has been stepped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Union

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .climate import SimulationOptions
from .surface import SurfaceState

logger = structlog.get_logger()

SECONDS_PER_DAY = 86400.0


class LifeformKind(Enum):
    """Species of lifeform."""

    RABBIT = "rabbit"

    @property
    def asset_path(self) -> str:
        """Path of the kind's mesh, relative to the assets directory."""
        return f"{self.value}/{self.value}.obj"


@dataclass(frozen=True)
class Wandering:
    """Idle; decides what to do next on its next step."""


@dataclass(frozen=True)
class MovingToVertex:
    """Walking toward a mesh vertex."""

    target: int


@dataclass(frozen=True)
class Gestating:
    """Pregnant since the given game time."""

    since: float


LifeformState = Union[Wandering, MovingToVertex, Gestating]


@dataclass
class LifeformOptions:
    """Behavior constants. Distances in km, times in game seconds."""

    # Temperature comfort band
    hot_threshold_k: float = 273.15 + 30.0
    cold_threshold_k: float = 273.15 + 5.0
    freezing_point_k: float = 273.15
    temperature_jitter_k: float = 1.0

    # Death conditions
    scorching_k: float = 273.15 + 60.0
    deep_water_km: float = 1.0
    max_age: float = 10 * SECONDS_PER_DAY

    # Water deeper than this blocks movement
    flooded_water_km: float = 0.1

    # Courtship
    maturity_age: float = SECONDS_PER_DAY / 2
    courtship_radius_km: float = 100.0
    attraction_radius_km: float = 400.0
    approachable_threshold: float = 0.35
    attractiveness_base: float = 0.4
    attractiveness_spread: float = 0.1
    conception_probability: float = 0.01
    rejection_penalty: float = 0.05

    # Attractiveness threshold dynamics
    initial_threshold: float = 0.1
    threshold_floor: float = 0.3
    threshold_decay: float = 0.000001  # per tick at time scale 1
    post_birth_threshold: float = 25.0

    # Reproduction
    gestation_duration: float = SECONDS_PER_DAY
    birth_death_probability: float = 1.0 / 6.0

    # Movement
    speed_km: float = 4.0  # per tick
    arrival_distance_km: float = 10.0
    gravity_km: float = 1.0  # velocity change per tick
    wander_attempts: int = 6


class PlanetView(Protocol):
    """What a lifeform needs to know about the planet it lives on."""

    surface: SurfaceState

    @property
    def lifeforms(self) -> Sequence["Lifeform"]: ...

    def nearest_vertex_to(self, position) -> int: ...
    def neighbors_of(self, vertex_id: int) -> List[int]: ...
    def surface_point(self, vertex_id: int) -> np.ndarray: ...
    def spawn_lifeform(self, kind: LifeformKind, position, game_time: float) -> "Lifeform": ...


@dataclass(frozen=True)
class LifeformRecord:
    """Immutable copy of a lifeform at one point in time."""

    id: int
    kind: LifeformKind
    position: np.ndarray  # read-only
    velocity: np.ndarray  # read-only
    time_born: float
    state: LifeformState
    attractiveness_threshold: float


@dataclass
class PopulationEvents:
    """Births and deaths collected during one pass over the population."""

    births: List["Lifeform"] = field(default_factory=list)
    deaths: Dict[int, str] = field(default_factory=dict)  # lifeform id -> cause

    def kill(self, lifeform: "Lifeform", cause: str) -> None:
        self.deaths.setdefault(lifeform.id, cause)

    def is_dead(self, lifeform: "Lifeform") -> bool:
        return lifeform.id in self.deaths


@dataclass(eq=False)
class Lifeform:
    """A single agent living on the planet surface."""

    id: int
    kind: LifeformKind
    position: np.ndarray  # km, planet-centred
    time_born: float  # game time
    prng: AleaPRNG
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))  # km per tick
    state: LifeformState = field(default_factory=Wandering)
    # Minimum attractiveness this lifeform accepts from a suitor. Rises with
    # every rejected attempt, decays slowly over time toward a floor.
    attractiveness_threshold: float = 0.1

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64).copy()
        self.velocity = np.asarray(self.velocity, dtype=np.float64).copy()

    def age(self, game_time: float) -> float:
        return game_time - self.time_born

    def record(self) -> LifeformRecord:
        position = self.position.copy()
        velocity = self.velocity.copy()
        position.flags.writeable = False
        velocity.flags.writeable = False
        return LifeformRecord(
            id=self.id,
            kind=self.kind,
            position=position,
            velocity=velocity,
            time_born=self.time_born,
            state=self.state,
            attractiveness_threshold=self.attractiveness_threshold,
        )

    def step(
        self,
        planet: PlanetView,
        tick: SimulationOptions,
        options: LifeformOptions,
        events: PopulationEvents,
    ) -> None:
        """
        Advance the lifeform by one tick.

        Args:
            planet: Planet the lifeform lives on
            tick: Current tick parameters (game time, time scale)
            options: Behavior constants
            events: Queue receiving births and deaths
        """
        point_idx = planet.nearest_vertex_to(self.position)
        point = planet.surface_point(point_idx)
        age = self.age(tick.game_time)
        cause = self._death_cause(planet.surface, point_idx, age, options)

        if self.attractiveness_threshold > options.threshold_floor:
            self.attractiveness_threshold = max(
                options.threshold_floor,
                self.attractiveness_threshold - options.threshold_decay * tick.time_scale,
            )

        state = self.state
        if isinstance(state, Wandering):
            self._wander(planet, point_idx, age, tick, options, events)
        elif isinstance(state, MovingToVertex):
            self._move_to_vertex(planet, point_idx, state.target, options)
        elif isinstance(state, Gestating):
            if tick.game_time > state.since + options.gestation_duration:
                if self._give_birth(planet, point, tick, options, events):
                    cause = cause or "childbirth"
                if cause:
                    events.kill(self, cause)
                return

        self._integrate(point, options)

        if cause:
            events.kill(self, cause)

    def _death_cause(
        self, surface: SurfaceState, point_idx: int, age: float, options: LifeformOptions
    ) -> Optional[str]:
        temperature = surface.temperature[point_idx]
        if surface.water_elevation[point_idx] > options.deep_water_km and temperature > options.freezing_point_k:
            return "drowned"
        if temperature > options.scorching_k:
            return "scorched"
        if age > options.max_age:
            return "old_age"
        return None

    def _is_liquid_flooded(self, surface: SurfaceState, vertex: int, options: LifeformOptions) -> bool:
        return (
            surface.water_elevation[vertex] > options.flooded_water_km
            and surface.temperature[vertex] > options.freezing_point_k
        )

    def _wander(
        self,
        planet: PlanetView,
        point_idx: int,
        age: float,
        tick: SimulationOptions,
        options: LifeformOptions,
        events: PopulationEvents,
    ) -> None:
        temperature = planet.surface.temperature[point_idx]
        if temperature > options.hot_threshold_k:
            self.state = MovingToVertex(self._seek_temperature(planet, point_idx, True, options))
        elif temperature < options.cold_threshold_k:
            self.state = MovingToVertex(self._seek_temperature(planet, point_idx, False, options))
        elif not self._court(planet, age, tick, options, events):
            self.state = MovingToVertex(self._random_dry_neighbor(planet, point_idx, options))

    def _seek_temperature(
        self, planet: PlanetView, point_idx: int, colder: bool, options: LifeformOptions
    ) -> int:
        """Pick the coldest (or warmest) dry neighbor, with a little jitter."""
        temperature = planet.surface.temperature
        best = point_idx
        best_temperature = temperature[point_idx]

        for neighbor in planet.neighbors_of(point_idx):
            jitter = self.prng.random() * options.temperature_jitter_k
            if self._is_liquid_flooded(planet.surface, neighbor, options):
                continue
            if colder:
                better = temperature[neighbor] + jitter < best_temperature
            else:
                better = temperature[neighbor] - jitter > best_temperature
            if better:
                best = neighbor
                best_temperature = temperature[neighbor]

        return best

    def _court(
        self,
        planet: PlanetView,
        age: float,
        tick: SimulationOptions,
        options: LifeformOptions,
        events: PopulationEvents,
    ) -> bool:
        """
        Interact with every other lifeform in range.

        Returns:
            True if the lifeform decided to walk toward a partner
        """
        seeking_partner = False

        for other in planet.lifeforms:
            if other is self or events.is_dead(other):
                continue

            distance = float(np.linalg.norm(other.position - self.position))
            if distance < options.courtship_radius_km and age >= options.maturity_age:
                attractiveness = options.attractiveness_base + self.prng.random() * options.attractiveness_spread
                if attractiveness >= other.attractiveness_threshold:
                    if self.prng.random() < options.conception_probability:
                        if not isinstance(other.state, Gestating):
                            logger.info("Lifeform conceived", mother=other.id, father=self.id)
                            other.state = Gestating(since=tick.game_time)
                    else:
                        other.attractiveness_threshold += options.rejection_penalty
            elif (
                distance < options.attraction_radius_km
                and other.attractiveness_threshold < options.approachable_threshold
            ):
                self.state = MovingToVertex(planet.nearest_vertex_to(other.position))
                seeking_partner = True

        return seeking_partner

    def _random_dry_neighbor(self, planet: PlanetView, point_idx: int, options: LifeformOptions) -> int:
        neighbors = planet.neighbors_of(point_idx)
        water = planet.surface.water_elevation

        choice = self.prng.choice(neighbors)
        attempts = 1
        while water[choice] > options.flooded_water_km and attempts < options.wander_attempts:
            choice = self.prng.choice(neighbors)
            attempts += 1
        return choice

    def _move_to_vertex(
        self, planet: PlanetView, point_idx: int, target: int, options: LifeformOptions
    ) -> None:
        direction = planet.surface_point(target) - self.position
        distance = float(np.linalg.norm(direction))

        if distance < options.arrival_distance_km or point_idx == target:
            self.state = Wandering()
            self.velocity = np.zeros(3)
        else:
            self.velocity = direction / distance * options.speed_km

    def _give_birth(
        self,
        planet: PlanetView,
        point: np.ndarray,
        tick: SimulationOptions,
        options: LifeformOptions,
        events: PopulationEvents,
    ) -> bool:
        """
        Queue a newborn at the parent's vertex and reset the parent.

        Returns:
            True if the parent dies from the birth
        """
        child = planet.spawn_lifeform(self.kind, point, tick.game_time)
        events.births.append(child)

        self.state = Wandering()
        self.attractiveness_threshold = options.post_birth_threshold
        logger.info("Lifeform gave birth", parent=self.id, child=child.id, game_time=tick.game_time)

        return self.prng.random() < options.birth_death_probability

    def _integrate(self, point: np.ndarray, options: LifeformOptions) -> None:
        """Move by the velocity, then land on the ground or fall toward it."""
        self.position = self.position + self.velocity

        ground = float(np.linalg.norm(point))
        distance = float(np.linalg.norm(self.position))
        if distance < ground:
            if distance == 0:
                self.position = np.array(point, dtype=np.float64)
            else:
                self.position = self.position / distance * ground
            self.velocity = np.zeros(3)
        else:
            # TODO: replace the constant pull with gravity scaled by planet mass
            self.velocity = self.velocity - self.position / distance * options.gravity_km
