"""
Water redistribution on the icosphere grid.

Water is moved by a few explicit relaxation passes per tick. In each pass
every vertex offers a fraction of its water to each neighbor whose total
surface (ground + water) is lower; the amount shrinks with the height
difference so neighboring surfaces settle instead of oscillating. Transfers
are accumulated in the scratch buffer and swapped in at the end of the pass.

Negative water is never clamped: it means the update rule is broken, and
WaterInvariantError is raised with the values involved.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .climate import SimulationOptions
from .neighbor_graph import MAX_NEIGHBORS, NO_NEIGHBOR
from .surface import SurfaceState, WaterInvariantError

logger = structlog.get_logger()

FREEZING_POINT_K = 273.15


@dataclass
class HydrologyOptions:
    """Water flow parameters."""

    sub_iterations: int = 2  # relaxation passes per tick
    flow_factor: float = 12.0  # divided by the time scale
    share_divisor: float = 10.0
    equalization_height_km: float = 50.0  # height difference for a full share
    freeze_water: bool = False  # frozen vertices keep their water


class Hydrology:
    """Advances the water field of a SurfaceState."""

    def __init__(
        self,
        surface: SurfaceState,
        neighbors: np.ndarray,
        options: Optional[HydrologyOptions] = None,
    ):
        """
        Initialize the water model.

        Args:
            surface: State to advance
            neighbors: (N, 6) neighbor table
            options: Flow parameters
        """
        self.surface = surface
        self.neighbors = neighbors
        self.options = options or HydrologyOptions()

        n = surface.n_vertices
        self._valid = neighbors != NO_NEIGHBOR
        self._safe_neighbors = np.where(self._valid, neighbors, np.arange(n)[:, None])

    def step(self, options: SimulationOptions) -> None:
        """Run all relaxation passes for one tick."""
        for _ in range(self.options.sub_iterations):
            self.relax(options.time_scale)

    def relax(self, time_scale: float = 1.0) -> None:
        """
        One redistribution pass.

        Args:
            time_scale: Simulation speed; larger values move more water per pass
        """
        surface = self.surface
        water = surface.water_elevation
        new_water = surface.new_water_elevation

        surface.check_water(water, stage="before_pass")
        np.copyto(new_water, water)

        total_height = surface.elevation + water
        factor = self.options.flow_factor / time_scale
        shared = water / factor / self.options.share_divisor

        senders = np.ones(surface.n_vertices, dtype=bool)
        if self.options.freeze_water:
            senders &= surface.temperature > FREEZING_POINT_K

        sent = np.zeros(surface.n_vertices)
        for direction in range(MAX_NEIGHBORS):
            targets = self._safe_neighbors[:, direction]
            difference = total_height - total_height[targets]
            sources = np.flatnonzero(senders & self._valid[:, direction] & (difference > 0))
            if len(sources) == 0:
                continue

            transmitted = np.minimum(
                shared[sources],
                shared[sources] * difference[sources] / self.options.equalization_height_km,
            )
            self._check_transfers(transmitted, sources, targets, shared, total_height)

            np.add.at(new_water, targets[sources], transmitted)
            sent[sources] += transmitted

        new_water -= sent
        surface.check_water(new_water, stage="after_pass")
        surface.swap_water()

    @staticmethod
    def _check_transfers(transmitted, sources, targets, shared, total_height) -> None:
        negative = np.flatnonzero(transmitted < 0)
        if len(negative) == 0:
            return
        k = int(negative[0])
        source = int(sources[k])
        target = int(targets[source])
        raise WaterInvariantError(
            "Negative water transfer",
            source=source,
            target=target,
            transmitted=float(transmitted[k]),
            shared=float(shared[source]),
            total_height=float(total_height[source]),
            target_total_height=float(total_height[target]),
            difference=float(total_height[source] - total_height[target]),
        )
