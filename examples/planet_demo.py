"""
Example running a small planet for a simulated week.
"""

import math

import numpy as np
import matplotlib.pyplot as plt
from py_planetsim import LifeformKind, SimulationOptions, generate
from py_planetsim.core.lifeform import SECONDS_PER_DAY
from py_planetsim.core.surface import spherical_angles
from py_planetsim.logging_config import configure_logging


def main():
    configure_logging("WARNING", "console")

    # Small, fast planet
    simulation = generate(subdivisions=4, radius=1000.0, seed="planet_demo")

    # A few rabbits on the driest vertices
    dry = np.flatnonzero(simulation.water_elevation == 0)
    for vid in dry[:: max(1, len(dry) // 10)][:10]:
        simulation.place_lifeform(LifeformKind.RABBIT, simulation.surface_point(int(vid)), 0.0)

    options = SimulationOptions(delta_time=1.0 / 60.0, time_scale=1.0)
    ticks = 5000
    day_length = 1200  # ticks per planet rotation

    print("Running simulation...")
    population = []
    for tick in range(ticks):
        angle = 2 * math.pi * tick / day_length
        sun = (math.cos(angle), math.sin(angle), 0.0)
        options.game_time = tick * 7 * SECONDS_PER_DAY / ticks
        simulation.tick(sun, options)
        population.append(len(simulation.lifeforms))

    stats = simulation.statistics()
    print(f"Temperature range: {stats['min_temperature']:.1f}K to {stats['max_temperature']:.1f}K")
    print(f"Total water: {stats['total_water']:.2f} km")
    print(f"Population: {stats['population']}")

    # Visualize results on (phi, theta) coordinates
    theta, phi = spherical_angles(simulation.surface.directions)
    fig, axes = plt.subplots(2, 2, figsize=(12, 10))

    ax = axes[0, 0]
    scatter = ax.scatter(phi, theta, c=simulation.elevation - simulation.radius, cmap='terrain', s=5)
    ax.set_title('Relief')
    ax.invert_yaxis()
    plt.colorbar(scatter, ax=ax, label='km')

    ax = axes[0, 1]
    scatter = ax.scatter(phi, theta, c=simulation.temperature, cmap='RdBu_r', s=5)
    ax.set_title('Temperature')
    ax.invert_yaxis()
    plt.colorbar(scatter, ax=ax, label='K')

    ax = axes[1, 0]
    scatter = ax.scatter(phi, theta, c=simulation.water_elevation, cmap='YlGnBu', s=5)
    ax.set_title('Water')
    ax.invert_yaxis()
    plt.colorbar(scatter, ax=ax, label='km')

    ax = axes[1, 1]
    ax.plot(population)
    ax.set_title('Population')
    ax.set_xlabel('Tick')

    plt.tight_layout()
    plt.savefig('planet_demo.png', dpi=150)
    print("Saved visualization to planet_demo.png")


if __name__ == "__main__":
    main()
