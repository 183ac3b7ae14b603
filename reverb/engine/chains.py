"""Filter compositions — serial allpass diffuser and parallel comb bank.

Parameter lists come either as the dataclasses below or as plain dicts
with the same keys, e.g. [{"time": 0.009, "gain": 0.5}, ...].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from primitives.errors import InvalidParameter
from primitives.filters import AllpassFilter, CombFilter
from primitives.rng import UniformSource


@dataclass
class AllpassParams:
    time: float          # seconds
    gain: float = 0.5

    @classmethod
    def coerce(cls, p) -> AllpassParams:
        if isinstance(p, cls):
            return p
        if isinstance(p, Mapping):
            try:
                return cls(**p)
            except TypeError as e:
                raise InvalidParameter(f"bad allpass params {dict(p)!r}: {e}") from e
        raise InvalidParameter(f"expected allpass params, got {p!r}")


@dataclass
class CombParams:
    time: float          # seconds
    gain: float = 1.0
    feedback: float = 0.5

    @classmethod
    def coerce(cls, p) -> CombParams:
        if isinstance(p, cls):
            return p
        if isinstance(p, Mapping):
            try:
                return cls(**p)
            except TypeError as e:
                raise InvalidParameter(f"bad comb params {dict(p)!r}: {e}") from e
        raise InvalidParameter(f"expected comb params, got {p!r}")


class SerialAllpassChain:
    """Allpass filters in series — output of stage i feeds stage i + 1.

    process_mix() also taps the partially diffused signal at every stage i
    with i % step == step // 2 and adds tap_sum / 3 to the final output.
    The divisor is fixed, not the tap count.
    """

    TAP_NORM = 3.0

    def __init__(self, sample_rate: float, params: Iterable, **delay_kwargs):
        self.allpass = []
        for p in params:
            p = AllpassParams.coerce(p)
            self.allpass.append(AllpassFilter(sample_rate, p.time, p.gain, **delay_kwargs))

    def __len__(self):
        return len(self.allpass)

    def set_params(self, params: Iterable):
        """Re-time and re-gain stages in order; extra params are an error.

        Every entry is checked before any stage changes.
        """
        params = [AllpassParams.coerce(p) for p in params]
        if len(params) > len(self.allpass):
            raise InvalidParameter(
                f"{len(params)} params for {len(self.allpass)} allpass stages")
        for ap, p in zip(self.allpass, params):
            ap.check_time(p.time)
            ap.check_gain(p.gain)
        for ap, p in zip(self.allpass, params):
            ap.set_time(p.time)
            ap.set_gain(p.gain)

    def process(self, x: float) -> float:
        for ap in self.allpass:
            x = ap.process(x)
        return x

    def process_mix(self, x: float, step: int) -> float:
        if step < 0:
            raise InvalidParameter(f"mix step must be >= 0, got {step}")
        if step == 0:
            return self.process(x)
        centre = step // 2
        taps = 0.0
        for i, ap in enumerate(self.allpass):
            x = ap.process(x)
            if i % step == centre:
                taps += x
        return x + taps / self.TAP_NORM

    def randomize_times(self, low: float, high: float, rng: UniformSource):
        """Draw every stage's delay time uniformly from [low, high). Gains stay."""
        if not 0.0 <= low <= high:
            raise InvalidParameter(f"need 0 <= low <= high, got [{low}, {high})")
        for ap in self.allpass:
            ap.set_time(low + rng.next() * (high - low))

    def times(self) -> list[float]:
        return [ap.time for ap in self.allpass]

    def reset(self):
        for ap in self.allpass:
            ap.reset()


class ParallelCombBank:
    """Comb filters side by side, all fed the same input, outputs summed.

    No normalisation by filter count: eight combs is roughly eight times
    the level of one.
    """

    def __init__(self, combs: list):
        self.comb = list(combs)

    @classmethod
    def from_params(cls, sample_rate: float, params: Iterable, **delay_kwargs) -> ParallelCombBank:
        combs = []
        for p in params:
            p = CombParams.coerce(p)
            combs.append(CombFilter(sample_rate, p.time, p.gain, p.feedback, **delay_kwargs))
        return cls(combs)

    def __len__(self):
        return len(self.comb)

    def set_params(self, params: Iterable):
        params = [CombParams.coerce(p) for p in params]
        if len(params) > len(self.comb):
            raise InvalidParameter(
                f"{len(params)} params for {len(self.comb)} comb filters")
        for comb, p in zip(self.comb, params):
            comb.check_time(p.time)
            comb.check_gain(p.gain)
            comb.check_feedback(p.feedback)
        for comb, p in zip(self.comb, params):
            comb.set_time(p.time)
            comb.set_gain(p.gain)
            comb.set_feedback(p.feedback)

    def process(self, x: float) -> float:
        out = 0.0
        for comb in self.comb:
            out += comb.process(x)
        return out

    def times(self) -> list[float]:
        return [comb.time for comb in self.comb]

    def reset(self):
        for comb in self.comb:
            comb.reset()
