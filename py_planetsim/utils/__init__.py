"""
Shared utilities.
"""

from .random import derive_prng, derive_seed

__all__ = ["derive_prng", "derive_seed"]
