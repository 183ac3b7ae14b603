"""Offline impulse-response rendering for the Freeverb.

Usage:
    python -m reverb.audio.render output.wav [--preset preset.json] [--seed 7]

Each channel gets its own early reflections and delay times, all drawn
from one seeded source, so the same params always give the same file.
"""

import argparse
import json
import logging
import time

import numpy as np

from primitives.filters import process_buffer
from primitives.rng import SeededRandom
from reverb.engine.early_reflection import EarlyReflection
from reverb.engine.freeverb import FreeverbReverberator
from reverb.engine.numba_freeverb import process_block_fast
from reverb.engine.params import SR, SCHEMA, MAX_RENDER_DELAY, default_params, validate_params
from shared.audio import declick, normalize, resample, save_wav, trim
from shared.params import ParamType

log = logging.getLogger(__name__)


def build_freeverb(params, sample_rate, rng):
    lo = params["allpass_delay_min"]
    return FreeverbReverberator.randomized(
        sample_rate, rng,
        comb_count=params["comb_count"],
        comb_delay_min=params["comb_delay_min"],
        comb_delay_range=params["comb_delay_range"],
        allpass_count=params["allpass_count"],
        allpass_gain=params["allpass_gain"],
        allpass_time_bounds=(lo, lo + params["allpass_delay_range"]),
        damp=params["damp"],
        roomsize=params["roomsize"],
        mix_step=params["allpass_mix_step"],
        max_time=MAX_RENDER_DELAY,
    )


def render_impulse_response(params: dict, sample_rate: int = SR, fast: bool = True) -> np.ndarray:
    """Render a reverb impulse response.

    Args:
        params: parameter dict (see reverb/engine/params.py); missing keys
            take their defaults, bad values raise InvalidParameter
        sample_rate: output sample rate in Hz
        fast: use the Numba loop for the Freeverb stage

    Returns:
        (samples, channels) float64 array
    """
    params = validate_params(params)
    t0 = time.perf_counter()
    render_sr = sample_rate * params["oversampling"]
    n_samples = int(render_sr * params["length"])
    channels = params["channels"]

    rng = SeededRandom(params["seed"])
    er = EarlyReflection(render_sr, params["er_taps"], params["er_range"])
    freeverb = build_freeverb(params, render_sr, rng)

    impulse = np.zeros(n_samples)
    impulse[0] = 1.0
    out = []
    for _ in range(channels):
        er.randomize(rng)
        er.reset()
        freeverb.randomize(rng)
        freeverb.reset()
        x = process_buffer(er, impulse)
        if fast:
            out.append(process_block_fast(freeverb, x))
        else:
            out.append(process_buffer(freeverb, x))
    wave = np.column_stack(out)

    if render_sr != sample_rate:
        wave = resample(wave, render_sr, sample_rate)
    if params["trim"]:
        wave = trim(wave)
    wave = declick(wave, params["declick_in"], params["declick_out"])
    if params["normalize"]:
        wave = normalize(wave)

    elapsed = time.perf_counter() - t0
    duration = wave.shape[0] / sample_rate
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %.1fs audio in %.3fs (%s, %d ch, %dx os, %.0fx RT)",
             duration, elapsed, "numba" if fast else "python", channels,
             params["oversampling"], rtf)
    return wave


def main(argv=None):
    parser = argparse.ArgumentParser(description="Freeverb impulse-response renderer")
    parser.add_argument("output", help="Output WAV file")
    parser.add_argument("--preset", help="Preset JSON file")
    parser.add_argument("--sr", type=int, default=SR, help=f"Sample rate (default {SR})")
    parser.add_argument("--random", action="store_true",
                        help="Re-roll every randomizable parameter from --seed")
    parser.add_argument("--slow", action="store_true",
                        help="Per-sample Python loop instead of Numba")
    for p in SCHEMA:
        if p.type == ParamType.BOOL:
            parser.add_argument(f"--{p.key}", type=lambda s: s.lower() in ("1", "true", "yes", "on"))
        else:
            parser.add_argument(f"--{p.key}", type=int if p.type == ParamType.INT else float)
    args = parser.parse_args(argv)

    params = default_params()
    if args.preset:
        with open(args.preset) as f:
            preset = json.load(f)
        preset.pop("_meta", None)
        params.update(SCHEMA.validate_and_clamp(preset))

    for p in SCHEMA:
        value = getattr(args, p.key)
        if value is not None:
            params[p.key] = value
    if args.random:
        params = SCHEMA.randomize(SeededRandom(params["seed"]), base=params)

    wave = render_impulse_response(params, args.sr, fast=not args.slow)
    save_wav(args.output, wave, args.sr)
    print(f"Saved {args.output}: {wave.shape[0]} samples, {args.sr} Hz, {wave.shape[1]} ch")


if __name__ == "__main__":
    main()
