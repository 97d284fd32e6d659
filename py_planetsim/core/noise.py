"""
Seeded 2D Perlin noise.

Used once at generation time to give the planet its initial relief and
temperature pattern. The noise is sampled on (theta, phi) spherical angles,
so it does not tile seamlessly around the poles; at the mesh resolutions
used here the seam is not visible in the data.

Data contract:
- Inputs: numpy arrays of x and y coordinates of the same shape, octave
  parameters, and a permutation table from ``make_permutation``.
- Output: array of the input shape, values roughly in [-1, 1].
"""

import numpy as np

from .alea_prng import AleaPRNG

# Gradient directions for the 2D lattice.
_GRADIENT_VECTORS = np.array([[0, 1], [0, -1], [1, 0], [-1, 0]], dtype=np.float64)


def make_permutation(prng: AleaPRNG) -> np.ndarray:
    """
    Build a doubled 256-entry permutation table from an Alea stream.

    Returns:
        int array of length 512
    """
    table = list(range(256))
    prng.shuffle(table)
    return np.array(table + table, dtype=np.int64)


def _fade(t):
    """6t^5 - 15t^4 + 10t^3"""
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(a, b, x):
    return a + x * (b - a)


def _gradient(h, x, y):
    g = _GRADIENT_VECTORS[h % 4]
    return g[..., 0] * x + g[..., 1] * y


def perlin_2d(perm: np.ndarray, x, y) -> np.ndarray:
    """Single octave of Perlin noise evaluated at every (x, y)."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    xi = np.floor(x).astype(np.int64)
    yi = np.floor(y).astype(np.int64)
    xf = x - xi
    yf = y - yi

    u = _fade(xf)
    v = _fade(yf)

    px0 = xi % 256
    px1 = (px0 + 1) % 256
    py0 = yi % 256
    py1 = (py0 + 1) % 256

    g00 = _gradient(perm[perm[px0] + py0], xf, yf)
    g01 = _gradient(perm[perm[px0] + py1], xf, yf - 1)
    g10 = _gradient(perm[perm[px1] + py0], xf - 1, yf)
    g11 = _gradient(perm[perm[px1] + py1], xf - 1, yf - 1)

    return _lerp(_lerp(g00, g10, u), _lerp(g01, g11, u), v)


def octave_noise_2d(
    perm: np.ndarray,
    x,
    y,
    octaves: int = 1,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
) -> np.ndarray:
    """
    Fractal sum of Perlin octaves, normalized by the total amplitude.

    Args:
        perm: Permutation table from make_permutation
        x, y: Sample coordinates
        octaves: Number of layers
        persistence: Amplitude multiplier between octaves
        lacunarity: Frequency multiplier between octaves

    Returns:
        Noise values in roughly [-1, 1]
    """
    if octaves < 1:
        raise ValueError(f"octaves must be >= 1, got {octaves}")

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    total = np.zeros(np.broadcast(x, y).shape)
    amplitude = 1.0
    frequency = 1.0
    max_amplitude = 0.0

    for _ in range(octaves):
        total += perlin_2d(perm, x * frequency, y * frequency) * amplitude
        max_amplitude += amplitude
        amplitude *= persistence
        frequency *= lacunarity

    return total / max_amplitude
