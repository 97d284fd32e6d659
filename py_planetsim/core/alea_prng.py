"""
Alea pseudo-random number generator.

Based on Johannes Baagøe's Alea algorithm. It is seedable from arbitrary
strings, cheap to construct and fully deterministic, which makes it suitable
for giving every lifeform and every noise layer its own independent stream.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

_2_POW_32 = 0x100000000
_2_POW_NEG_32 = 2.3283064365386963e-10


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Stateful string hash used to derive the generator state from a seed."""

    def __init__(self):
        self.n = 0xEFC8249D

    def __call__(self, data) -> float:
        n = self.n
        for char in str(data):
            n += ord(char)
            h = 0.02519603282416938 * n
            n = _uint32(h)
            h = (h - n) * n
            n = _uint32(h)
            h -= n
            n += h * _2_POW_32
        self.n = n
        return _uint32(n) * _2_POW_NEG_32


class AleaPRNG:
    """
    Alea PRNG producing floats in [0, 1).

    Two generators built from the same seed produce the same sequence.
    """

    def __init__(self, seed):
        """Initialize with seed string or number (or an iterable of them)."""
        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            parts = list(seed)
        else:
            parts = [seed]

        mash = _Mash()
        state: List[float] = [mash(" "), mash(" "), mash(" ")]
        for part in parts:
            for i in range(3):
                state[i] -= mash(part)
                if state[i] < 0:
                    state[i] += 1

        self.s0, self.s1, self.s2 = state
        self.c = 1

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        t = 2091639 * self.s0 + self.c * _2_POW_NEG_32
        self.c = int(t)
        self.s0, self.s1, self.s2 = self.s1, self.s2, t - self.c
        return self.s2

    def randrange(self, stop: int) -> int:
        """Random integer in [0, stop)."""
        if stop <= 0:
            raise ValueError("randrange() stop must be positive")
        return min(int(self.random() * stop), stop - 1)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randrange(len(seq))]

    def shuffle(self, items: list) -> None:
        """Shuffle a list in place (Fisher-Yates)."""
        for i in range(len(items) - 1, 0, -1):
            j = self.randrange(i + 1)
            items[i], items[j] = items[j], items[i]
