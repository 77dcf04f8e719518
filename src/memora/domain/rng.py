"""SplitMix64 pseudo random generator.

Owned by the caller and passed explicitly to every randomised operation so that
a fixed seed and a fixed input sequence always reproduce the same schedule.
"""

_MASK = (1 << 64) - 1
_TWO_POW_64 = 2.0**64


class SplitMix64:
    def __init__(self, seed: int = 0):
        self.state = seed & _MASK

    @classmethod
    def from_seed(cls, seed: int) -> "SplitMix64":
        return cls(seed)

    def reseed(self, seed: int) -> None:
        self.state = seed & _MASK

    def next_rand(self) -> int:
        """Next uniform 64-bit unsigned integer."""
        self.state = (self.state + 0x9E3779B97F4A7C15) & _MASK
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK
        return z ^ (z >> 31)

    def next_below(self, upper: int) -> int:
        """Uniform integer in ``[0, upper)``."""
        if upper <= 0:
            raise ValueError(f"upper bound must be positive, got {upper}")
        return self.next_rand() % upper

    def next_float(self, low: float, high: float) -> float:
        """Uniform float in ``[low, high)``."""
        frac = self.next_rand() / _TWO_POW_64
        return frac * (high - low) + low

    def copy(self) -> "SplitMix64":
        return SplitMix64(self.state)

    def __repr__(self) -> str:
        return f"SplitMix64(state={self.state:#x})"
