"""Numba-optimized Freeverb inner loop.

Same algorithm as reverb/engine/freeverb.py, but all state is flat numpy
arrays so Numba can JIT the entire per-sample loop. State is copied out of
a FreeverbReverberator, advanced, and copied back, so the fast path and the
per-sample path can be mixed on one instance. Linear delay lines only.
"""

import numpy as np
from numba import njit

from primitives.delay_line import LinearDelayLine
from primitives.errors import InvalidParameter


@njit(cache=True)
def _tick(bufs, caps, write_idxs, read_pos, i, x):
    """One LinearDelayLine.process() call on line i."""
    cap = caps[i]
    wi = write_idxs[i]
    bufs[i, wi] = x
    write_idxs[i] = (wi + 1) % cap

    pos = read_pos[i]
    idx = int(pos)
    frac = pos - idx
    nxt = (pos + 1.0) % cap
    if nxt >= cap:
        nxt -= cap
    read_pos[i] = nxt
    s0 = bufs[i, idx]
    s1 = bufs[i, (idx + 1) % cap]
    return s0 + frac * (s1 - s0)


@njit(cache=True)
def _process_block(
    input_audio,
    output,
    # LP comb state
    comb_bufs, comb_caps, comb_write, comb_read, comb_fb, comb_x1,
    damp, roomsize,
    # Allpass state
    ap_bufs, ap_caps, ap_write, ap_read, ap_fb, ap_gains,
    mix_step,
):
    n_comb = comb_bufs.shape[0]
    n_ap = ap_bufs.shape[0]
    centre = mix_step // 2 if mix_step > 0 else 0

    for n in range(len(input_audio)):
        x = input_audio[n]

        # --- Parallel LP combs ---
        s = 0.0
        for c in range(n_comb):
            g = roomsize[c] * (1.0 - damp[c]) / (1.0 - damp[c] * comb_x1[c])
            comb_x1[c] = x
            u = x - g * comb_fb[c]
            comb_fb[c] = _tick(comb_bufs, comb_caps, comb_write, comb_read, c, u)
            s += u

        # --- Serial allpasses (with optional tap mix) ---
        taps = 0.0
        for a in range(n_ap):
            gain = ap_gains[a]
            u = s + gain * ap_fb[a]
            y = ap_fb[a] - gain * u
            ap_fb[a] = _tick(ap_bufs, ap_caps, ap_write, ap_read, a, u)
            s = y
            if mix_step > 0 and a % mix_step == centre:
                taps += s

        if mix_step > 0:
            s = s + taps / 3.0
        output[n] = s


def _pack(lines):
    caps = np.array([dl.capacity for dl in lines], dtype=np.int64)
    bufs = np.zeros((len(lines), int(caps.max())), dtype=np.float64)
    for i, dl in enumerate(lines):
        bufs[i, :dl.capacity] = dl.ring.data
    write = np.array([dl.write_idx for dl in lines], dtype=np.int64)
    read = np.array([dl.read_pos for dl in lines], dtype=np.float64)
    return bufs, caps, write, read


def _unpack(lines, bufs, write, read):
    for i, dl in enumerate(lines):
        dl.ring.data[:] = bufs[i, :dl.capacity]
        dl.write_idx = int(write[i])
        dl.read_pos = float(read[i])


def process_block_fast(freeverb, input_audio: np.ndarray) -> np.ndarray:
    """Drop-in for process_buffer(freeverb, audio), but Numba-accelerated."""
    combs = freeverb.combs.comb
    allpasses = freeverb.allpass.allpass
    comb_lines = [c.delay for c in combs]
    ap_lines = [ap.delay for ap in allpasses]
    if not all(type(dl) is LinearDelayLine for dl in comb_lines + ap_lines):
        raise InvalidParameter("fast path supports LinearDelayLine only")

    comb_bufs, comb_caps, comb_write, comb_read = _pack(comb_lines)
    ap_bufs, ap_caps, ap_write, ap_read = _pack(ap_lines)
    comb_fb = np.array([c.buf for c in combs], dtype=np.float64)
    comb_x1 = np.array([c.x_prev for c in combs], dtype=np.float64)
    damp = np.array([c.damp for c in combs], dtype=np.float64)
    roomsize = np.array([c.roomsize for c in combs], dtype=np.float64)
    ap_fb = np.array([ap.buf for ap in allpasses], dtype=np.float64)
    ap_gains = np.array([ap.gain for ap in allpasses], dtype=np.float64)

    audio = np.ascontiguousarray(input_audio, dtype=np.float64)
    output = np.empty(len(audio), dtype=np.float64)
    _process_block(audio, output,
                   comb_bufs, comb_caps, comb_write, comb_read, comb_fb, comb_x1,
                   damp, roomsize,
                   ap_bufs, ap_caps, ap_write, ap_read, ap_fb, ap_gains,
                   freeverb.mix_step)

    _unpack(comb_lines, comb_bufs, comb_write, comb_read)
    _unpack(ap_lines, ap_bufs, ap_write, ap_read)
    for i, c in enumerate(combs):
        c.buf = float(comb_fb[i])
        c.x_prev = float(comb_x1[i])
    for i, ap in enumerate(allpasses):
        ap.buf = float(ap_fb[i])
    return output
