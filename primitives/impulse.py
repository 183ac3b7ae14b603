"""Band-limited impulse — a Dirichlet-kernel pulse train."""

import math

import numpy as np

from primitives.errors import InvalidParameter


class BandlimitedImpulse:
    """Discrete approximation of a unit impulse repeating every P samples.

        value(n) = sin(M * pi * n / P) / (P * sin(pi * n / P))

    P = floor(length) is the period; M = length, or length - 1 when length
    is an even integer. Equals 1 at multiples of P.

    Usage:
        blit = BandlimitedImpulse(64)
        blit.oscillate(0)      # 1.0
        blit.generate(256)     # four pulses
    """

    def __init__(self, sample_count: float):
        self.set_length(sample_count)

    def set_length(self, sample_count: float):
        if not (math.isfinite(sample_count) and sample_count >= 1):
            raise InvalidParameter(f"sample_count must be >= 1, got {sample_count}")
        self.period = math.floor(sample_count)
        if sample_count == self.period and self.period % 2 == 0:
            self.harmonics = sample_count - 1
        else:
            self.harmonics = sample_count

    def oscillate(self, n: float) -> float:
        P = self.period
        if math.fmod(n, P) == 0:
            return 1.0
        denom = P * math.sin(math.pi * n / P)
        if denom == 0.0:
            return 1.0
        value = math.sin(self.harmonics * math.pi * n / P) / denom
        return max(-1.0, min(1.0, value))

    def generate(self, n_samples: int) -> np.ndarray:
        """oscillate(0), ..., oscillate(n_samples - 1) as an array."""
        P = self.period
        n = np.arange(n_samples, dtype=np.float64)
        denom = P * np.sin(np.pi * n / P)
        at_peak = np.fmod(n, P) == 0
        safe = np.where(at_peak, 1.0, denom)
        out = np.sin(self.harmonics * np.pi * n / P) / safe
        out[at_peak] = 1.0
        return np.clip(out, -1.0, 1.0)
