"""Freeverb — parallel lowpass-feedback combs into a serial allpass diffuser.

Signal flow (per sample):
    Input -> [8 LP combs in parallel, summed] -> [4 allpasses in series] -> Output

The combs build the dense decaying tail; damping makes the treble die
before the bass. The allpasses smear the comb echoes into a wash, and
with a non-zero mix step some partially diffused taps are blended back in.
"""

import logging
import math

from primitives.errors import InvalidParameter
from primitives.filters import LowpassFeedbackComb
from primitives.rng import UniformSource
from reverb.engine.chains import AllpassParams, ParallelCombBank, SerialAllpassChain

log = logging.getLogger(__name__)

# Jezar's tuning, in samples at 25 kHz
TUNING_RATE = 25000
COMB_TUNING = [1116, 1188, 1277, 1356, 1422, 1491, 1557, 1617]
ALLPASS_TUNING = [225, 556, 441, 341]

CANONICAL_COMB_TIMES = [n / TUNING_RATE for n in COMB_TUNING]
CANONICAL_ALLPASS = [AllpassParams(n / TUNING_RATE, 0.5) for n in ALLPASS_TUNING]

COMB_TIME_RANGE = (0.04, 0.03)       # (min, span) seconds for random comb times
ALLPASS_TIME_BOUNDS = (0.005, 0.025)  # [low, high) seconds for random allpass times


class FreeverbReverberator:
    """Stateful Freeverb processor. One instance per channel."""

    def __init__(self, sample_rate: float, comb_times=None, damp: float = 0.2,
                 roomsize: float = 0.84, allpass_params=None, mix_step: int = 0,
                 comb_time_range=COMB_TIME_RANGE,
                 allpass_time_bounds=ALLPASS_TIME_BOUNDS,
                 **delay_kwargs):
        if comb_times is None:
            comb_times = CANONICAL_COMB_TIMES
        if allpass_params is None:
            allpass_params = CANONICAL_ALLPASS

        low, span = comb_time_range
        if not (0.0 <= low < math.inf and 0.0 <= span < math.inf):
            raise InvalidParameter(
                f"comb time range needs min, span >= 0, got {comb_time_range}")
        lo, hi = allpass_time_bounds
        if not 0.0 <= lo <= hi < math.inf:
            raise InvalidParameter(
                f"allpass time bounds need 0 <= low <= high, got {allpass_time_bounds}")

        self.sample_rate = sample_rate
        self.comb_time_range = (low, span)
        self.allpass_time_bounds = (lo, hi)
        self.combs = ParallelCombBank([
            LowpassFeedbackComb(sample_rate, t, damp, roomsize, **delay_kwargs)
            for t in comb_times
        ])
        self.allpass = SerialAllpassChain(sample_rate, allpass_params, **delay_kwargs)
        self.set_mix_step(mix_step)

    @classmethod
    def randomized(cls, sample_rate: float, rng: UniformSource, comb_count: int = 8,
                   comb_delay_min: float = 0.04, comb_delay_range: float = 0.03,
                   allpass_count: int = 4, allpass_gain: float = 0.5,
                   allpass_time_bounds=ALLPASS_TIME_BOUNDS, **kwargs):
        """Build with comb and allpass times drawn from the seeded source."""
        if comb_count < 1 or allpass_count < 1:
            raise InvalidParameter(
                f"need at least one comb and one allpass, got {comb_count}, {allpass_count}")
        comb_times = [rng.next() * comb_delay_range + comb_delay_min
                      for _ in range(comb_count)]
        lo, hi = allpass_time_bounds
        allpass_params = [AllpassParams(lo + rng.next() * (hi - lo), allpass_gain)
                          for _ in range(allpass_count)]
        return cls(sample_rate, comb_times, allpass_params=allpass_params,
                   comb_time_range=(comb_delay_min, comb_delay_range),
                   allpass_time_bounds=allpass_time_bounds, **kwargs)

    def set_mix_step(self, step: int):
        if step < 0:
            raise InvalidParameter(f"mix step must be >= 0, got {step}")
        self.mix_step = int(step)

    def set_damp(self, damp: float):
        for comb in self.combs.comb:
            comb.set_damp(damp)

    def set_roomsize(self, roomsize: float):
        for comb in self.combs.comb:
            comb.set_roomsize(roomsize)

    def randomize(self, rng: UniformSource):
        """Redraw every comb and allpass delay time. Gains and damping stay."""
        low, span = self.comb_time_range
        for comb in self.combs.comb:
            comb.set_time(rng.next() * span + low)
        self.allpass.randomize_times(*self.allpass_time_bounds, rng)
        log.debug("randomized comb times %s, allpass times %s",
                  [round(t, 5) for t in self.combs.times()],
                  [round(t, 5) for t in self.allpass.times()])

    def process(self, x: float) -> float:
        return self.allpass.process_mix(self.combs.process(x), self.mix_step)

    def reset(self):
        self.combs.reset()
        self.allpass.reset()
