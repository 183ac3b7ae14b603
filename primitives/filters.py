"""Filters — allpass, comb, lowpass-feedback comb. Built on fractional delay lines.

Each filter owns one delay line plus a feedback register `buf` holding the
delay line's most recent output. That register adds one sample to the loop,
so a filter with delay time t recirculates every t * sample_rate + 1 samples.
"""

import math

import numpy as np

from primitives.delay_line import LinearDelayLine, MAX_TIME, DelayTimePolicy
from primitives.errors import InvalidParameter, ModeConflict


def _check_finite(name, value):
    if not math.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value}")


def _check_unit(name, value):
    """Require |value| < 1."""
    _check_finite(name, value)
    if abs(value) >= 1.0:
        raise InvalidParameter(f"|{name}| must be < 1 for stability, got {value}")


def _check_fraction(name, value):
    """Require 0 <= value < 1."""
    _check_finite(name, value)
    if not 0.0 <= value < 1.0:
        raise InvalidParameter(f"{name} must be in [0, 1), got {value}")


class _DelayFilter:
    """Shared plumbing: one delay line, one feedback register."""

    def __init__(self, sample_rate, time, delay_line=LinearDelayLine,
                 max_time=MAX_TIME, policy=DelayTimePolicy.REJECT):
        self.delay = delay_line(sample_rate, time, max_time=max_time, policy=policy)
        self.buf = 0.0

    @property
    def time(self) -> float:
        return self.delay.time

    def check_time(self, seconds: float):
        self.delay.check_time(seconds)

    def set_time(self, seconds: float):
        self.delay.set_time(seconds)

    def reset(self):
        self.delay.reset()
        self.buf = 0.0


class AllpassFilter(_DelayFilter):
    """Schroeder allpass on a fractional delay line.

        u = x + g * buf
        y = buf - g * u
        buf <- delay(u)

    Unity magnitude at every frequency for |g| < 1; only the phase is
    smeared. Chain several to turn a click into a diffuse cloud.
    """

    def __init__(self, sample_rate: float, time: float, gain: float = 0.5, **kwargs):
        super().__init__(sample_rate, time, **kwargs)
        self.set_gain(gain)

    @staticmethod
    def check_gain(gain: float):
        _check_unit("gain", gain)

    def set_gain(self, gain: float):
        self.check_gain(gain)
        self.gain = gain

    def process(self, x: float) -> float:
        u = x + self.gain * self.buf
        y = self.buf - self.gain * u
        self.buf = self.delay.process(u)
        return y


class CombFilter(_DelayFilter):
    """Comb filter with feedback (process) or feedforward (process_ff) wiring.

    Feedback:     u = x - f * buf;  buf <- delay(u);  y = gain * u
    Feedforward:  y = gain * (x + f * delay(x))

    The first call picks the wiring for the instance; calling the other one
    before reset() raises ModeConflict.
    """

    FEEDBACK = "feedback"
    FEEDFORWARD = "feedforward"

    def __init__(self, sample_rate: float, time: float, gain: float = 1.0,
                 feedback: float = 0.5, **kwargs):
        super().__init__(sample_rate, time, **kwargs)
        self.set_gain(gain)
        self.set_feedback(feedback)
        self.mode = None

    @staticmethod
    def check_gain(gain: float):
        _check_finite("gain", gain)

    @staticmethod
    def check_feedback(feedback: float):
        _check_unit("feedback", feedback)

    def set_gain(self, gain: float):
        self.check_gain(gain)
        self.gain = gain

    def set_feedback(self, feedback: float):
        self.check_feedback(feedback)
        self.feedback = feedback

    def _claim(self, mode):
        if self.mode is None:
            self.mode = mode
        elif self.mode != mode:
            raise ModeConflict(
                f"comb filter already running in {self.mode} mode, "
                f"reset() before switching to {mode}")

    def process(self, x: float) -> float:
        if self.mode != self.FEEDBACK:
            self._claim(self.FEEDBACK)
        u = x - self.feedback * self.buf
        self.buf = self.delay.process(u)
        return self.gain * u

    def process_ff(self, x: float) -> float:
        if self.mode != self.FEEDFORWARD:
            self._claim(self.FEEDFORWARD)
        return self.gain * (x + self.feedback * self.delay.process(x))

    def reset(self):
        super().reset()
        self.mode = None


class LowpassFeedbackComb(_DelayFilter):
    """Comb whose feedback gain follows a one-pole damping recursion.

        g = roomsize * (1 - damp) / (1 - damp * x_prev)
        u = x - g * buf;  buf <- delay(u);  y = u

    x_prev is the previous raw input. High frequencies die out faster than
    low ones, which is what makes the tail sound like a room.
    Inputs are expected in [-1, 1].
    """

    def __init__(self, sample_rate: float, time: float, damp: float = 0.2,
                 roomsize: float = 0.84, **kwargs):
        super().__init__(sample_rate, time, **kwargs)
        self.set_damp(damp)
        self.set_roomsize(roomsize)
        self.x_prev = 0.0

    def set_damp(self, damp: float):
        _check_fraction("damp", damp)
        self.damp = damp

    def set_roomsize(self, roomsize: float):
        _check_fraction("roomsize", roomsize)
        self.roomsize = roomsize

    def process(self, x: float) -> float:
        g = self.roomsize * (1.0 - self.damp) / (1.0 - self.damp * self.x_prev)
        self.x_prev = x
        u = x - g * self.buf
        self.buf = self.delay.process(u)
        return u

    def reset(self):
        super().reset()
        self.x_prev = 0.0


def process_buffer(processor, audio: np.ndarray) -> np.ndarray:
    """Run a mono buffer through anything with a per-sample process()."""
    output = np.empty(len(audio), dtype=np.float64)
    for i in range(len(audio)):
        output[i] = processor.process(audio[i])
    return output
