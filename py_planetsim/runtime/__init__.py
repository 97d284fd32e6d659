"""
Runtime components that drive a simulation from a host application.
"""

from .worker import SimulationWorker, terminate_process

__all__ = ["SimulationWorker", "terminate_process"]
