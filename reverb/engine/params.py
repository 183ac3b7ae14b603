"""Parameter schema for the impulse-response renderer.

This is the shared contract between the CLI, presets and scripting. All
parameter sources produce a dict in this format. Times are in seconds
unless noted otherwise.
"""

from shared.params import ParamType as T, ParamDef, ParamSchema

SR = 44100

# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    # --- Render ---
    ParamDef("length", T.FLOAT, section="render", default=2.0,
             range=(0.02, 16.0), unit="s", randomize_skip=True),
    ParamDef("channels", T.INT, section="render", default=2,
             range=(1, 8), randomize_skip=True),
    ParamDef("oversampling", T.INT, section="render", default=1,
             range=(1, 16), randomize_skip=True),
    ParamDef("declick_in", T.INT, section="render", default=2,
             range=(0, SR // 100), unit="samples"),
    ParamDef("declick_out", T.INT, section="render", default=SR // 1000,
             range=(0, SR // 100), unit="samples"),
    ParamDef("normalize", T.BOOL, section="render", default=True,
             randomize_skip=True),
    ParamDef("trim", T.BOOL, section="render", default=False,
             randomize_skip=True),

    # --- Early reflections ---
    ParamDef("er_taps", T.INT, section="early_reflection", default=16,
             range=(0, 128)),
    ParamDef("er_range", T.FLOAT, section="early_reflection", default=0.002,
             range=(0.001, 0.1), unit="s"),

    # --- Comb bank ---
    ParamDef("damp", T.FLOAT, section="comb", default=0.2,
             range=(0.0, 0.999)),
    ParamDef("roomsize", T.FLOAT, section="comb", default=0.84,
             range=(0.0, 0.999)),
    ParamDef("comb_count", T.INT, section="comb", default=8,
             range=(1, 128)),
    ParamDef("comb_delay_min", T.FLOAT, section="comb", default=0.04,
             range=(0.0001, 0.1), unit="s"),
    ParamDef("comb_delay_range", T.FLOAT, section="comb", default=0.03,
             range=(0.0001, 0.1), unit="s"),

    # --- Allpass chain ---
    ParamDef("allpass_count", T.INT, section="allpass", default=4,
             range=(1, 128)),
    ParamDef("allpass_gain", T.FLOAT, section="allpass", default=0.5,
             range=(0.01, 0.99)),
    ParamDef("allpass_delay_min", T.FLOAT, section="allpass", default=0.005,
             range=(0.0001, 0.1), unit="s"),
    ParamDef("allpass_delay_range", T.FLOAT, section="allpass", default=0.025,
             range=(0.0001, 0.1), unit="s"),
    ParamDef("allpass_mix_step", T.INT, section="allpass", default=0,
             range=(0, 16)),

    ParamDef("seed", T.INT, section="random", default=0,
             range=(0, 65535)),
]

SCHEMA = ParamSchema(_PARAMS)

default_params = SCHEMA.default_params
validate_params = SCHEMA.validate
PARAM_RANGES = SCHEMA.param_ranges()
PARAM_SECTIONS = SCHEMA.param_sections()

# Longest delay any render parameter can ask for, plus headroom. Sizes the
# delay lines so oversampled renders don't allocate 5 s buffers per filter.
MAX_RENDER_DELAY = 0.25
