"""Shared audio utilities — WAV I/O and impulse-response post-processing.

Arrays are float64, mono (samples,) or multi-channel (samples, channels).
"""

from math import gcd

import numpy as np
from scipy.io import wavfile
from scipy.signal import resample_poly


def load_wav(path, sr=44100):
    """Load a WAV file and resample to the target sample rate.

    Returns (audio_array, sample_rate).
    """
    file_sr, data = wavfile.read(path)
    if data.dtype == np.int16:
        audio = data.astype(np.float64) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / 2147483648.0
    else:
        audio = data.astype(np.float64)
    if file_sr != sr:
        audio = resample(audio, file_sr, sr)
    return audio, sr


def save_wav(path, audio, sr=44100):
    """Save audio to a 16-bit WAV file. Clips to [-1, 1]; does not normalize."""
    out = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
    wavfile.write(path, sr, out)


def make_impulse(sr=44100, seconds=0.5):
    """Generate a unit impulse (click)."""
    n = int(sr * seconds)
    impulse = np.zeros(n)
    impulse[0] = 1.0
    return impulse


def resample(audio, from_sr, to_sr):
    """Polyphase resampling along the time axis."""
    from_sr, to_sr = int(from_sr), int(to_sr)
    if from_sr == to_sr:
        return audio
    g = gcd(to_sr, from_sr)
    return resample_poly(audio, to_sr // g, from_sr // g, axis=0)


def trim(audio, threshold=1e-5):
    """Drop the trailing run of samples quieter than threshold on every channel."""
    level = np.abs(audio) if audio.ndim == 1 else np.abs(audio).max(axis=1)
    loud = np.flatnonzero(level >= threshold)
    if len(loud) == 0:
        return audio[:0]
    return audio[:loud[-1] + 1]


def declick(audio, fade_in=0, fade_out=0):
    """Linear fade-in over the first fade_in samples and fade-out over the last fade_out."""
    audio = np.array(audio, dtype=np.float64)
    n = audio.shape[0]
    fade_in = min(int(fade_in), n)
    fade_out = min(int(fade_out), n)
    if fade_in > 0:
        ramp = np.arange(fade_in) / fade_in
        audio[:fade_in] *= ramp if audio.ndim == 1 else ramp[:, None]
    if fade_out > 0:
        ramp = np.arange(fade_out, 0, -1) / fade_out
        ramp = ramp - 1.0 / fade_out  # last sample lands on exactly 0
        audio[n - fade_out:] *= ramp if audio.ndim == 1 else ramp[:, None]
    return audio


def normalize(audio, peak=1.0):
    """Scale so the largest absolute sample equals peak. Silence is returned as is."""
    current = np.max(np.abs(audio)) if audio.size else 0.0
    if current == 0.0:
        return audio
    return audio * (peak / current)
