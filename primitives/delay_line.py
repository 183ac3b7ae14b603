"""Fractional delay lines — the unit of delay for every reverb filter.

Two interpolation variants share one interface:

    dl = LinearDelayLine(sample_rate=44100, time=0.0253)
    out = dl.process(sample)   # one write + one read per call
    dl.set_time(0.031)         # moves the read position, not the samples

The read position is derived from the write cursor:

    read = (write - sample_rate * time) mod capacity

and split into an integer cursor plus a fractional offset that drives the
interpolation. The variant is picked at construction time.
"""

import logging
import math
from enum import Enum

import numpy as np
from scipy.signal.windows import hann

from primitives.errors import InvalidParameter

log = logging.getLogger(__name__)

MAX_TIME = 5.0  # seconds of buffer per delay line


class DelayTimePolicy(Enum):
    """What set_time() does with a delay the buffer can't hold."""
    REJECT = "reject"  # raise InvalidParameter
    WRAP = "wrap"      # alias modulo capacity to a shorter delay


def check_sample_rate(sample_rate):
    if not (sample_rate > 0 and math.isfinite(sample_rate)):
        raise InvalidParameter(f"sample_rate must be positive, got {sample_rate}")


class RingBuffer:
    """Fixed-capacity circular buffer. All index arithmetic goes through wrap()."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise InvalidParameter(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.data = np.zeros(capacity, dtype=np.float64)

    def wrap(self, idx):
        """Map any int or float index into [0, capacity)."""
        idx = idx % self.capacity
        # float % can round a tiny negative up to exactly capacity
        if idx >= self.capacity:
            idx -= self.capacity
        return idx

    def span(self, start: int, length: int) -> np.ndarray:
        """Indices of `length` consecutive slots starting at `start`."""
        return (start + np.arange(length)) % self.capacity

    def clear(self):
        self.data[:] = 0.0


class FractionalDelayLine:
    """Circular buffer with independent write and read cursors.

    Subclasses implement _place_read() (turn a delay in samples into a read
    position) and process(). Capacity is ceil(sample_rate * max_time)
    samples, which is also the hard ceiling on the delay.
    """

    def __init__(self, sample_rate: float, time: float = 0.0,
                 max_time: float = MAX_TIME,
                 policy: DelayTimePolicy = DelayTimePolicy.REJECT):
        check_sample_rate(sample_rate)
        if not (max_time > 0 and math.isfinite(max_time)):
            raise InvalidParameter(f"max_time must be positive, got {max_time}")
        self.sample_rate = sample_rate
        self.policy = policy
        self.ring = RingBuffer(int(math.ceil(sample_rate * max_time)))
        self.write_idx = 0
        self.time = 0.0
        self.set_time(time)

    @property
    def capacity(self) -> int:
        return self.ring.capacity

    @property
    def latency(self) -> int:
        """Extra samples of delay added by the interpolator."""
        return 0

    def max_delay(self) -> float:
        """Longest delay in samples the buffer holds without aliasing (inclusive)."""
        raise NotImplementedError

    def check_time(self, seconds: float) -> float:
        """Delay in samples for `seconds`, or InvalidParameter if the policy
        forbids it. Changes nothing.
        """
        if not math.isfinite(seconds):
            raise InvalidParameter(f"delay time must be finite, got {seconds}")
        delay = self.sample_rate * seconds
        if delay < 0 or delay > self.max_delay():
            if self.policy is DelayTimePolicy.REJECT:
                raise InvalidParameter(
                    f"delay time {seconds}s ({delay:.1f} samples) outside "
                    f"[0, {self.max_delay():.0f}] samples")
            log.debug("delay %.1f samples aliased modulo %d", delay, self.capacity)
        return delay

    def set_time(self, seconds: float):
        """Recompute the read position from the current write cursor.

        Samples already in the buffer stay where they are; only the read
        position moves.
        """
        delay = self.check_time(seconds)
        self.time = seconds
        self._place_read(delay)

    def _place_read(self, delay: float):
        raise NotImplementedError

    def process(self, x: float) -> float:
        raise NotImplementedError

    def reset(self):
        """Zero the buffer and rewind the cursors for the current time."""
        self.ring.clear()
        self.write_idx = 0
        self._place_read(self.sample_rate * self.time)


class LinearDelayLine(FractionalDelayLine):
    """Two-point linear interpolation. O(1) per sample.

    An impulse through a delay of t seconds peaks at round(t * sample_rate).
    """

    def max_delay(self) -> float:
        # the read interpolates towards the next slot, which must not be
        # the one just written
        return float(self.capacity - 1)

    def _place_read(self, delay):
        self.read_pos = self.ring.wrap(self.write_idx - delay)

    def process(self, x: float) -> float:
        ring = self.ring
        ring.data[self.write_idx] = x
        self.write_idx = ring.wrap(self.write_idx + 1)

        idx = int(self.read_pos)
        frac = self.read_pos - idx
        self.read_pos = ring.wrap(self.read_pos + 1.0)
        s0 = ring.data[idx]
        s1 = ring.data[ring.wrap(idx + 1)]
        return s0 + frac * (s1 - s0)


class SincDelayLine(FractionalDelayLine):
    """Hann-windowed sinc interpolation over 2 * half_width taps.

    window[i] = hann(i) * sinc(frac + i - half_width)

    The kernel reads the kernel_length samples behind the read position, so
    the output lags the requested delay by half_width samples.
    """

    def __init__(self, sample_rate: float, time: float = 0.0,
                 max_time: float = MAX_TIME,
                 policy: DelayTimePolicy = DelayTimePolicy.REJECT,
                 half_width: int = 16):
        if half_width < 1:
            raise InvalidParameter(f"half_width must be at least 1, got {half_width}")
        self.half_width = half_width
        self.kernel_length = 2 * half_width
        self._taps = np.arange(self.kernel_length)
        # sym=True gives sin^2(pi * i / (kernel_length - 1))
        self._hann = hann(self.kernel_length, sym=True)
        super().__init__(sample_rate, time, max_time, policy)

    @property
    def latency(self) -> int:
        return self.half_width

    def max_delay(self) -> float:
        return float(self.capacity - self.kernel_length - 1)

    def _place_read(self, delay):
        pos = self.ring.wrap(self.write_idx - delay - self.kernel_length)
        # Anchor the kernel on the first whole sample at or after pos;
        # frac is how far pos lies behind it.
        cursor = math.ceil(pos)
        self.frac = cursor - pos
        self.read_idx = self.ring.wrap(cursor)
        self.window = self._hann * np.sinc(self.frac + self._taps - self.half_width)

    def process(self, x: float) -> float:
        ring = self.ring
        ring.data[self.write_idx] = x
        self.write_idx = ring.wrap(self.write_idx + 1)

        idx = ring.span(self.read_idx, self.kernel_length)
        out = float(np.dot(ring.data[idx], self.window))
        self.read_idx = ring.wrap(self.read_idx + 1)
        return out
