"""Early reflections — a sparse cluster of discrete echoes ahead of the tail.

    y = x + sum(gain_i * x[n - d_i])

Tap delays d_i are drawn from [0, spread) seconds and gains from
[-1, 1) / taps on every randomize(), so each channel of a render gets
its own reflection pattern from the shared seeded source.
"""

import logging
import math

from primitives.delay_line import LinearDelayLine
from primitives.errors import InvalidParameter
from primitives.rng import UniformSource

log = logging.getLogger(__name__)


class EarlyReflection:

    def __init__(self, sample_rate: float, taps: int = 16, spread: float = 0.002):
        if taps < 0:
            raise InvalidParameter(f"taps must be >= 0, got {taps}")
        if not (spread > 0 and math.isfinite(spread)):
            raise InvalidParameter(f"spread must be positive, got {spread}")
        self.spread = spread
        self.taps = [LinearDelayLine(sample_rate, 0.0, max_time=spread + 1.0 / sample_rate)
                     for _ in range(taps)]
        self.gains = [0.0] * taps

    def randomize(self, rng: UniformSource):
        n = len(self.taps)
        for i, dl in enumerate(self.taps):
            dl.set_time(rng.next() * self.spread)
            self.gains[i] = (2.0 * rng.next() - 1.0) / n
        log.debug("randomized %d early reflection taps over %.4fs", n, self.spread)

    def process(self, x: float) -> float:
        out = x
        for dl, gain in zip(self.taps, self.gains):
            out += gain * dl.process(x)
        return out

    def reset(self):
        for dl in self.taps:
            dl.reset()
