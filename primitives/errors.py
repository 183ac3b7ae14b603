"""Exceptions raised by the reverb engine.

Everything is checked at construction or setter time. The per-sample
process() calls never raise on values that got past the setters.
"""


class ReverbError(Exception):
    """Base class for engine errors."""


class InvalidParameter(ReverbError, ValueError):
    """A sample rate, delay time, gain or feedback value is out of range."""


class ModeConflict(ReverbError, RuntimeError):
    """Feedback and feedforward processing were mixed on one comb filter."""
