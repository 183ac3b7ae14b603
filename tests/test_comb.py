"""Test comb filters — feedback, feedforward, lowpass-feedback, parallel bank.

Run: uv run python tests/test_comb.py

Key test: feedback comb echoes shrink by |feedback| every loop.
"""

import numpy as np
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.errors import InvalidParameter, ModeConflict
from primitives.filters import CombFilter, LowpassFeedbackComb, process_buffer
from reverb.engine.chains import CombParams, ParallelCombBank

SR = 25000
D = 50
LOOP = D + 1  # delay line + feedback register


def make_impulse(n):
    signal = np.zeros(n)
    signal[0] = 1.0
    return signal


# ---------------------------------------------------------------------------
# Test 1: Feedback comb — geometric decay with ratio |f|
# ---------------------------------------------------------------------------
def test_feedback_decay():
    print("Test 1: Feedback comb decay")
    for f in [0.3, 0.7, -0.9]:
        comb = CombFilter(SR, D / SR, gain=1.0, feedback=f)
        out = process_buffer(comb, make_impulse(LOOP * 10 + 1))
        echoes = out[::LOOP][:10]
        expected = (-f) ** np.arange(10)
        np.testing.assert_allclose(echoes, expected, atol=1e-12)
        ratios = np.abs(echoes[1:] / echoes[:-1])
        np.testing.assert_allclose(ratios, abs(f), rtol=1e-9)
        between = np.delete(out, np.arange(0, len(out), LOOP))
        assert np.max(np.abs(between)) < 1e-12


def test_feedback_output_gain():
    comb = CombFilter(SR, D / SR, gain=0.25, feedback=0.5)
    out = process_buffer(comb, make_impulse(LOOP + 1))
    assert abs(out[0] - 0.25) < 1e-12
    assert abs(out[LOOP] + 0.125) < 1e-12


def test_unstable_feedback_rejected():
    with pytest.raises(InvalidParameter):
        CombFilter(SR, 0.01, feedback=1.0)
    comb = CombFilter(SR, 0.01, feedback=0.5)
    with pytest.raises(InvalidParameter):
        comb.set_feedback(-1.5)
    with pytest.raises(InvalidParameter):
        comb.set_gain(float("inf"))


# ---------------------------------------------------------------------------
# Test 2: Feedforward comb — one echo, no recirculation
# ---------------------------------------------------------------------------
def test_feedforward():
    print("Test 2: Feedforward comb")
    comb = CombFilter(SR, D / SR, gain=0.5, feedback=0.8)
    x = make_impulse(3 * D)
    out = np.array([comb.process_ff(s) for s in x])
    assert abs(out[0] - 0.5) < 1e-12
    assert abs(out[D] - 0.4) < 1e-12
    out[0] = out[D] = 0.0
    assert np.max(np.abs(out)) < 1e-12


def test_mode_conflict():
    comb = CombFilter(SR, D / SR)
    comb.process(1.0)
    with pytest.raises(ModeConflict):
        comb.process_ff(0.0)
    comb.reset()
    comb.process_ff(1.0)
    with pytest.raises(ModeConflict):
        comb.process(0.0)


# ---------------------------------------------------------------------------
# Test 3: Lowpass-feedback comb — gain tracks the previous input
# ---------------------------------------------------------------------------
def test_lpcomb_impulse():
    print("Test 3: LP comb")
    comb = LowpassFeedbackComb(SR, D / SR, damp=0.2, roomsize=0.84)
    out = process_buffer(comb, make_impulse(3 * LOOP))
    g = 0.84 * (1 - 0.2)
    assert out[0] == 1.0
    assert abs(out[LOOP] + g) < 1e-12
    assert abs(out[2 * LOOP] - g * g) < 1e-12


def test_lpcomb_damping_uses_previous_input():
    comb = LowpassFeedbackComb(SR, D / SR, damp=0.2, roomsize=0.84)
    x = make_impulse(LOOP + 1)
    x[LOOP - 1] = 0.5
    out = process_buffer(comb, x)
    # At the first echo the gain is roomsize*(1-damp)/(1-damp*0.5)
    g = 0.84 * 0.8 / (1 - 0.2 * 0.5)
    assert abs(out[LOOP] + g) < 1e-12
    assert comb.x_prev == 0.0


def test_lpcomb_ranges():
    for bad in [1.0, -0.1, 1.5]:
        with pytest.raises(InvalidParameter):
            LowpassFeedbackComb(SR, 0.01, damp=bad)
        with pytest.raises(InvalidParameter):
            LowpassFeedbackComb(SR, 0.01, roomsize=bad)
    comb = LowpassFeedbackComb(SR, 0.01, damp=0.0, roomsize=0.0)
    # roomsize 0: no recirculation at all
    out = process_buffer(comb, make_impulse(2000))
    assert out[0] == 1.0
    assert not np.any(out[1:])


def test_lpcomb_reset():
    comb = LowpassFeedbackComb(SR, D / SR)
    first = process_buffer(comb, make_impulse(500))
    comb.reset()
    assert comb.x_prev == 0.0 and comb.buf == 0.0
    np.testing.assert_array_equal(first, process_buffer(comb, make_impulse(500)))


# ---------------------------------------------------------------------------
# Test 4: Parallel bank — same input to every comb, outputs summed
# ---------------------------------------------------------------------------
def test_parallel_bank_sums():
    print("Test 4: Parallel comb bank")
    params = [CombParams(0.0297, 0.5, 0.7), {"time": 0.0371, "gain": 0.5, "feedback": -0.6}]
    bank = ParallelCombBank.from_params(SR, params)
    solo = [CombFilter(SR, 0.0297, 0.5, 0.7), CombFilter(SR, 0.0371, 0.5, -0.6)]
    noise = np.random.default_rng(3).standard_normal(4000)
    for x in noise:
        expected = 0.0
        for comb in solo:
            expected += comb.process(x)
        assert bank.process(x) == expected


def test_parallel_bank_not_normalised():
    bank = ParallelCombBank.from_params(SR, [CombParams(D / SR, 1.0, 0.5)] * 4)
    assert len(bank) == 4
    assert bank.process(1.0) == 4.0


def test_parallel_bank_set_params():
    bank = ParallelCombBank.from_params(SR, [CombParams(0.01)] * 2)
    bank.set_params([CombParams(0.02, 0.3, 0.4)])
    assert bank.times() == [0.02, 0.01]
    assert bank.comb[0].gain == 0.3 and bank.comb[0].feedback == 0.4
    with pytest.raises(InvalidParameter):
        bank.set_params([CombParams(0.01)] * 3)
    with pytest.raises(InvalidParameter):
        bank.set_params([CombParams(0.01, 1.0, 1.2)])


def test_failed_set_params_changes_nothing():
    bank = ParallelCombBank.from_params(SR, [CombParams(0.01, 0.5, 0.5)] * 2)
    with pytest.raises(InvalidParameter):
        bank.set_params([CombParams(0.02, 0.3, 0.4), CombParams(0.03, 0.3, -1.0)])
    assert bank.times() == [0.01, 0.01]
    assert [(c.gain, c.feedback) for c in bank.comb] == [(0.5, 0.5)] * 2


def test_misspelled_param_key():
    with pytest.raises(InvalidParameter):
        ParallelCombBank.from_params(SR, [{"time": 0.01, "gian": 0.5}])
    with pytest.raises(InvalidParameter):
        ParallelCombBank.from_params(SR, [{"feedback": 0.5}])


if __name__ == "__main__":
    print(f"Sample rate: {SR} Hz\n")
    test_feedback_decay()
    test_feedforward()
    test_lpcomb_impulse()
    test_parallel_bank_sums()
    print("\nDone!")
