"""Test impulse-response rendering, post-processing and the CLI.

Run: uv run python tests/test_render.py
"""

import json
import numpy as np
from scipy.io import wavfile
import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.errors import InvalidParameter
from reverb.audio.render import main, render_impulse_response
from shared.audio import declick, load_wav, normalize, resample, save_wav, trim

SR = 8000
SHORT = {"length": 0.1}


# ---------------------------------------------------------------------------
# Test 1: Shape, normalisation, declick
# ---------------------------------------------------------------------------
def test_render_shape_and_level():
    print("Test 1: Render shape")
    wave = render_impulse_response(SHORT, SR)
    assert wave.shape == (800, 2)
    assert np.all(np.isfinite(wave))
    assert abs(np.max(np.abs(wave)) - 1.0) < 1e-12
    # Default declick: both ramps land on zero
    assert np.all(wave[0] == 0.0)
    assert np.all(wave[-1] == 0.0)


def test_render_direct_path():
    # No early reflections, no fades: sample 0 is the comb sum through
    # four allpasses at g=0.5, i.e. comb_count / 16
    wave = render_impulse_response({"length": 0.1, "er_taps": 0, "declick_in": 0,
                                    "declick_out": 0, "normalize": False}, SR)
    assert np.allclose(wave[0], 0.5, atol=1e-12)
    wave = render_impulse_response({"length": 0.1, "er_taps": 0, "declick_in": 0,
                                    "declick_out": 0, "normalize": False,
                                    "comb_count": 4, "channels": 1}, SR)
    assert wave.shape == (800, 1)
    assert abs(wave[0, 0] - 0.25) < 1e-12


# ---------------------------------------------------------------------------
# Test 2: Determinism — same seed, same file
# ---------------------------------------------------------------------------
def test_render_deterministic():
    print("Test 2: Determinism")
    a = render_impulse_response(SHORT, SR)
    b = render_impulse_response(SHORT, SR)
    np.testing.assert_array_equal(a, b)
    # Channels draw different delay times from the shared source
    assert not np.allclose(a[:, 0], a[:, 1])
    c = render_impulse_response({"length": 0.1, "seed": 1}, SR)
    assert not np.allclose(a, c)


def test_fast_matches_slow():
    params = {"length": 0.1, "allpass_mix_step": 2}
    fast = render_impulse_response(params, SR, fast=True)
    slow = render_impulse_response(params, SR, fast=False)
    np.testing.assert_allclose(fast, slow, rtol=0, atol=1e-10)


# ---------------------------------------------------------------------------
# Test 3: Oversampling, trim, bad input
# ---------------------------------------------------------------------------
def test_oversampling_keeps_output_rate():
    print("Test 3: Oversampling + trim")
    wave = render_impulse_response({"length": 0.1, "oversampling": 2}, SR)
    assert wave.shape == (800, 2)
    assert np.all(np.isfinite(wave))


def test_trim_drops_silent_tail():
    params = {"length": 1.0, "roomsize": 0.1, "channels": 1, "allpass_gain": 0.3,
              "allpass_delay_min": 0.001, "allpass_delay_range": 0.004}
    wave = render_impulse_response(dict(params, trim=True), SR)
    assert 0 < wave.shape[0] < SR
    untrimmed = render_impulse_response(params, SR)
    assert untrimmed.shape[0] == SR


def test_invalid_params_raise():
    with pytest.raises(InvalidParameter):
        render_impulse_response({"roomsize": 1.5}, SR)
    with pytest.raises(InvalidParameter):
        render_impulse_response({"colour": "blue"}, SR)


# ---------------------------------------------------------------------------
# Test 4: CLI writes a 16-bit WAV
# ---------------------------------------------------------------------------
def test_cli_writes_wav():
    print("Test 4: CLI")
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "ir.wav")
        main([path, "--sr", str(SR), "--length", "0.05", "--channels", "1"])
        sr, data = wavfile.read(path)
        assert sr == SR
        assert data.dtype == np.int16
        assert data.shape[0] == 400
        assert np.max(np.abs(data)) >= 32766


def test_cli_preset_is_clamped():
    with tempfile.TemporaryDirectory() as tmp:
        preset = os.path.join(tmp, "p.json")
        with open(preset, "w") as f:
            json.dump({"_meta": {"name": "huge"}, "roomsize": 3.0, "length": 0.05,
                       "channels": 2, "unknown": 1}, f)
        path = os.path.join(tmp, "ir.wav")
        main([path, "--preset", preset, "--sr", str(SR), "--slow"])
        _, data = wavfile.read(path)
        assert data.shape == (400, 2)


def test_cli_random_is_reproducible():
    with tempfile.TemporaryDirectory() as tmp:
        paths = [os.path.join(tmp, f"ir{i}.wav") for i in range(2)]
        for path in paths:
            main([path, "--sr", str(SR), "--random", "--seed", "9", "--length", "0.05"])
        a = wavfile.read(paths[0])[1]
        b = wavfile.read(paths[1])[1]
        np.testing.assert_array_equal(a, b)


# ---------------------------------------------------------------------------
# Test 5: Post-processing helpers
# ---------------------------------------------------------------------------
def test_declick():
    print("Test 5: Post-processing")
    audio = np.ones((10, 2))
    out = declick(audio, 4, 4)
    np.testing.assert_allclose(out[:4, 0], [0.0, 0.25, 0.5, 0.75])
    np.testing.assert_allclose(out[-4:, 1], [0.75, 0.5, 0.25, 0.0])
    assert np.all(out[4:6] == 1.0)
    assert np.all(audio == 1.0)  # input untouched
    np.testing.assert_array_equal(declick(np.ones(5), 0, 0), np.ones(5))


def test_trim():
    audio = np.array([0.5, 0.1, 0.0, 2e-5, 1e-6, 0.0])
    np.testing.assert_array_equal(trim(audio), audio[:4])
    stereo = np.zeros((6, 2))
    stereo[4, 1] = 0.1
    assert trim(stereo).shape == (5, 2)
    assert len(trim(np.zeros(8))) == 0


def test_normalize():
    out = normalize(np.array([0.25, -0.5]))
    np.testing.assert_allclose(out, [0.5, -1.0])
    silent = np.zeros(4)
    np.testing.assert_array_equal(normalize(silent), silent)


def test_resample_and_wav_io():
    tone = np.sin(2 * np.pi * 440 * np.arange(SR) / SR) * 0.5
    assert len(resample(tone, SR, 2 * SR)) == 2 * SR
    assert resample(tone, SR, SR) is tone
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "tone.wav")
        save_wav(path, tone, SR)
        audio, sr = load_wav(path, sr=SR)
        assert sr == SR
        np.testing.assert_allclose(audio, tone, atol=1e-4)
        audio, sr = load_wav(path, sr=2 * SR)
        assert sr == 2 * SR and len(audio) == 2 * SR


if __name__ == "__main__":
    print(f"Sample rate: {SR} Hz\n")
    test_render_shape_and_level()
    test_render_deterministic()
    test_oversampling_keeps_output_rate()
    test_cli_writes_wav()
    test_declick()
    print("\nDone!")
