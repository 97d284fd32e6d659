"""
Random number generation utilities.

Every random consumer in the simulation (noise layers, each lifeform) owns a
separate Alea stream derived from the planet seed and a label, so adding or
removing one consumer never shifts the numbers another one sees. Python's
random and NumPy's random are not used.
"""

from ..core.alea_prng import AleaPRNG


def derive_seed(seed: str, *labels) -> str:
    """
    Build a child seed string from a master seed and a chain of labels.

    Args:
        seed: Master seed
        *labels: Stream identifiers, e.g. ("lifeform", 12)

    Returns:
        Seed string such as "earth:lifeform:12"
    """
    return ":".join([str(seed)] + [str(label) for label in labels])


def derive_prng(seed: str, *labels) -> AleaPRNG:
    """
    Get an Alea PRNG for the stream identified by seed and labels.

    Returns:
        AleaPRNG instance
    """
    return AleaPRNG(derive_seed(seed, *labels))
