"""
Planet surface simulation: icosphere climate, hydrology and lifeforms.
"""

from .core import Simulation, SimulationOptions, LifeformKind, generate

__version__ = "0.1.0"

__all__ = ["Simulation", "SimulationOptions", "LifeformKind", "generate"]
