"""
Thermal simulation on the icosphere grid.

One step applies, per vertex:
- Conduction to colder neighbors (1D Fourier law along each edge)
- Solar heating proportional to the cosine of the sun angle
- Radiative loss (Stefan-Boltzmann)

The step reads only the live temperature buffer and accumulates into the
scratch buffer, which is then swapped in. Constants assume the whole planet
is a thin slab of silicate rock; the model aims for stable, qualitatively
sensible behavior rather than climate-scientific accuracy.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .neighbor_graph import MAX_NEIGHBORS, NO_NEIGHBOR, edge_lengths
from .surface import SurfaceState

logger = structlog.get_logger()

STEFAN_BOLTZMANN = 5.670374e-8  # W.m-2.K-4


@dataclass
class ThermalConstants:
    """Material constants of the thermal model (SI units)."""

    specific_heat: float = 700.0  # J/K/kg, SiO2
    density: float = 5513.0  # kg/m³, mean density of the Earth
    slab_thickness: float = 0.001  # m of material exchanging heat per vertex
    # Between water (0.96) and limestone (0.92)
    emissivity: float = 0.93
    # Simulated seconds per real second at time scale 1
    time_step_multiplier: float = 100.0


@dataclass
class SimulationOptions:
    """Per-tick parameters supplied by the caller."""

    solar_constant: float = 1361.0  # W/m²
    conductivity: float = 1.0  # W/m/K
    # Time scales above 1 make the water model unstable
    time_scale: float = 1.0
    game_time: float = 0.0  # in-game seconds
    delta_time: float = 1.0 / 60.0  # real seconds covered by one tick

    @classmethod
    def from_settings(cls, settings) -> "SimulationOptions":
        """Tick parameters from the application defaults."""
        return cls(
            solar_constant=settings.solar_constant,
            conductivity=settings.conductivity,
            time_scale=settings.time_scale,
        )

    @property
    def dt(self) -> float:
        """Simulated seconds covered by one tick, before the model multiplier."""
        return self.delta_time * self.time_scale


class Climate:
    """Advances the temperature field of a SurfaceState."""

    def __init__(
        self,
        surface: SurfaceState,
        neighbors: np.ndarray,
        radius: float,
        constants: Optional[ThermalConstants] = None,
    ):
        """
        Initialize the thermal model.

        Args:
            surface: State to advance
            neighbors: (N, 6) neighbor table
            radius: Planet radius in km
            constants: Material constants
        """
        self.surface = surface
        self.neighbors = neighbors
        self.radius = radius
        self.constants = constants or ThermalConstants()

        n = surface.n_vertices
        radius_m = radius * 1000.0
        # Surface of the planet divided by the number of points
        self.mean_point_area = 4.0 * math.pi * radius_m * radius_m / n  # m²
        point_mass = self.mean_point_area * self.constants.slab_thickness * self.constants.density
        self.heat_capacity = self.constants.specific_heat * point_mass  # J/K

        self.edge_lengths = edge_lengths(surface.directions, neighbors, scale=radius_m)  # m
        self._valid = neighbors != NO_NEIGHBOR
        self._safe_neighbors = np.where(self._valid, neighbors, np.arange(n)[:, None])

    def time_step(self, options: SimulationOptions) -> float:
        """Simulated seconds advanced by one tick."""
        return options.dt * self.constants.time_step_multiplier

    def step(self, solar_direction, options: SimulationOptions) -> None:
        """
        Advance temperatures by one tick.

        Args:
            solar_direction: 3-vector pointing from the planet to the sun
            options: Tick parameters
        """
        surface = self.surface
        temperature = surface.temperature
        new_temperature = surface.new_temperature
        dt = self.time_step(options)

        # Temperature may never go below 0 K
        np.maximum(temperature, 0.0, out=new_temperature)

        self._conduct(temperature, new_temperature, options.conductivity, dt)
        new_temperature += self.solar_gain(solar_direction, options.solar_constant, dt)
        new_temperature -= self.radiative_loss(temperature, dt)

        surface.swap_temperature()

    def _conduct(self, temperature, new_temperature, conductivity: float, dt: float) -> None:
        """
        Move heat along every edge from the hotter end to the colder end.

        Each edge is handled once, from its hot end, which is equivalent to a
        symmetric relaxation of the edge.
        """
        for direction in range(MAX_NEIGHBORS):
            targets = self._safe_neighbors[:, direction]
            delta = temperature[targets] - temperature
            sources = np.flatnonzero(self._valid[:, direction] & (delta < 0))
            if len(sources) == 0:
                continue

            dx = self.edge_lengths[sources, direction]
            d_t = delta[sources]
            flux = -conductivity * d_t / dx  # W.m-2
            contact_area = dx * dx / 2.0  # m²
            heat = flux * contact_area * dt  # J
            gain = heat / self.heat_capacity  # K

            np.add.at(new_temperature, targets[sources], gain)
            new_temperature[sources] -= gain

    def solar_gain(self, solar_direction, solar_constant: float, dt: float) -> np.ndarray:
        """Temperature gain from sunlight for every vertex; zero on the night side."""
        sun = np.asarray(solar_direction, dtype=np.float64)
        sun_norm = np.linalg.norm(sun)
        if solar_constant == 0 or sun_norm == 0:
            return np.zeros(self.surface.n_vertices)

        cosine = self.surface.directions @ sun / sun_norm
        coefficient = np.maximum(0.0, cosine / (2.0 * math.pi))
        irradiance = solar_constant * coefficient * self.mean_point_area  # W
        return irradiance * dt / self.heat_capacity

    def radiative_loss(self, temperature: np.ndarray, dt: float) -> np.ndarray:
        """Temperature lost to thermal radiation for every vertex."""
        emittance = STEFAN_BOLTZMANN * temperature ** 4 * self.constants.emissivity  # W.m-2
        heat = emittance * self.mean_point_area * dt  # J
        return heat / self.heat_capacity
