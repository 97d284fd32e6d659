"""
Per-vertex surface state of the planet.

Holds the parallel arrays every simulation step reads and writes:

- elevation: distance from the planet centre to the ground, in km (static)
- water_elevation: depth of the water column above the ground, in km
- temperature: surface temperature, in Kelvin

Temperature and water each have a scratch buffer. A step accumulates the
next state into the scratch buffer while reading only the live one, then
swaps the two references, so every vertex is updated from the same prior
snapshot regardless of iteration order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .noise import make_permutation, octave_noise_2d
from ..utils.random import derive_seed

logger = structlog.get_logger()


class SimulationInvariantError(RuntimeError):
    """
    An internal invariant of the simulation state was violated.

    This is a defect, not a recoverable condition: the state is corrupt and
    the simulation must not continue. ``context`` carries every value
    involved so the failure can be diagnosed from the log alone.
    """

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context: Dict[str, Any] = context

    def __str__(self):
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        base = super().__str__()
        return f"{base} ({details})" if details else base


class WaterInvariantError(SimulationInvariantError):
    """Negative water elevation or negative water transfer."""


@dataclass
class GenerationOptions:
    """Noise parameters for the initial surface."""

    # Terrain relief
    elevation_frequency: float = 3.0
    elevation_offset: Tuple[float, float] = (74.0, 42.0)
    elevation_octaves: int = 4
    relief_fraction: float = 1.0 / 20.0  # max relief as a fraction of the radius

    # Temperature pattern
    temperature_frequency: float = 10.0
    temperature_offset: Tuple[float, float] = (1.0, 1.0)
    temperature_octaves: int = 6
    temperature_scale_k: float = 300.0  # (noise + 1) * scale

    # Water fills every basin below this height above the radius (km)
    sea_level_offset_km: float = 0.0


@dataclass
class SurfaceState:
    """Double-buffered per-vertex state."""

    directions: np.ndarray       # (N, 3) unit vectors, immutable
    elevation: np.ndarray        # (N,) km from the planet centre
    water_elevation: np.ndarray  # (N,) km
    temperature: np.ndarray      # (N,) K
    new_water_elevation: np.ndarray = field(default=None)
    new_temperature: np.ndarray = field(default=None)

    def __post_init__(self):
        n = len(self.directions)
        for name in ("elevation", "water_elevation", "temperature"):
            values = np.asarray(getattr(self, name), dtype=np.float64)
            if values.shape != (n,):
                raise ValueError(f"{name} must have shape ({n},), got {values.shape}")
            setattr(self, name, values)
        if self.new_water_elevation is None:
            self.new_water_elevation = np.zeros(n)
        if self.new_temperature is None:
            self.new_temperature = np.zeros(n)
        self.check_water()

    @property
    def n_vertices(self) -> int:
        return len(self.directions)

    def swap_temperature(self) -> None:
        """Make the scratch temperature buffer live."""
        self.temperature, self.new_temperature = self.new_temperature, self.temperature

    def swap_water(self) -> None:
        """Make the scratch water buffer live."""
        self.water_elevation, self.new_water_elevation = (
            self.new_water_elevation,
            self.water_elevation,
        )

    def check_water(self, values: Optional[np.ndarray] = None, stage: str = "live") -> None:
        """
        Raise WaterInvariantError if any water elevation is negative.

        Args:
            values: Array to check, defaults to the live water buffer
            stage: Label reported in the error context
        """
        values = self.water_elevation if values is None else values
        negative = np.flatnonzero(values < 0)
        if len(negative):
            vertex = int(negative[0])
            raise WaterInvariantError(
                "Negative water elevation",
                stage=stage,
                vertex=vertex,
                water_elevation=float(values[vertex]),
                elevation=float(self.elevation[vertex]),
                temperature=float(self.temperature[vertex]),
                negative_vertices=len(negative),
            )

    def surface_points(self) -> np.ndarray:
        """Positions of the water/ground surface, km, shape (N, 3)."""
        return self.directions * (self.elevation + self.water_elevation)[:, None]

    def vertex_buffer(self) -> np.ndarray:
        """
        Interleaved render data, one row per vertex.

        Returns:
            (N, 5) float32 array of x, y, z, temperature, water_elevation
        """
        buffer = np.empty((self.n_vertices, 5), dtype=np.float32)
        buffer[:, 0:3] = self.surface_points()
        buffer[:, 3] = self.temperature
        buffer[:, 4] = self.water_elevation
        return buffer

    def total_water(self) -> float:
        return float(np.sum(self.water_elevation))


def spherical_angles(directions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Polar angle theta = acos(z) and azimuth phi = atan2(y, x) of unit vectors."""
    theta = np.arccos(np.clip(directions[:, 2], -1.0, 1.0))
    phi = np.arctan2(directions[:, 1], directions[:, 0])
    return theta, phi


def initialize_surface(
    directions: np.ndarray,
    radius: float,
    seed: str,
    options: Optional[GenerationOptions] = None,
) -> SurfaceState:
    """
    Build the initial surface from two seeded noise fields.

    Elevation is the radius plus relief of up to radius * relief_fraction;
    water fills every vertex below sea level up to sea level; temperature is
    (noise + 1) * temperature_scale_k.

    Args:
        directions: (N, 3) unit vectors of the mesh
        radius: Planet radius in km
        seed: Master seed
        options: Noise parameters

    Returns:
        SurfaceState
    """
    options = options or GenerationOptions()
    theta, phi = spherical_angles(directions)

    elevation_perm = make_permutation(AleaPRNG(derive_seed(seed, "elevation")))
    relief = octave_noise_2d(
        elevation_perm,
        theta * options.elevation_frequency + options.elevation_offset[0],
        phi * options.elevation_frequency + options.elevation_offset[1],
        octaves=options.elevation_octaves,
    )
    elevation = radius + relief * radius * options.relief_fraction

    sea_level = radius + options.sea_level_offset_km
    water = np.maximum(0.0, sea_level - elevation)

    temperature_perm = make_permutation(AleaPRNG(derive_seed(seed, "temperature")))
    temperature_noise = octave_noise_2d(
        temperature_perm,
        theta * options.temperature_frequency + options.temperature_offset[0],
        phi * options.temperature_frequency + options.temperature_offset[1],
        octaves=options.temperature_octaves,
    )
    temperature = (temperature_noise + 1.0) * options.temperature_scale_k

    logger.info(
        "Surface initialized",
        vertices=len(directions),
        min_elevation=float(elevation.min()),
        max_elevation=float(elevation.max()),
        submerged=int(np.sum(water > 0)),
        mean_temperature=float(temperature.mean()),
    )

    return SurfaceState(
        directions=directions,
        elevation=elevation,
        water_elevation=water,
        temperature=temperature,
    )
