"""Declarative parameter schema.

A renderer's parameter contract is a list of ParamDef objects. ParamSchema
wraps the list and derives defaults, ranges and sections from it, checks
incoming dicts (strictly, or leniently by clamping), and re-rolls values
for the "random patch" button.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from primitives.errors import InvalidParameter
from primitives.rng import UniformSource


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"
    BOOL = "bool"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    range: tuple | None = None  # (min, max) inclusive
    unit: str = ""
    randomize_skip: bool = False


class ParamSchema:
    """Derives parameter structures from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        return {p.key: p.range for p in self._params if p.range is not None}

    def param_sections(self) -> dict[str, list[str]]:
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def validate(self, raw: dict) -> dict:
        """Strict check: defaults filled in, anything unknown or out of range raises."""
        result = self.default_params()
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                raise InvalidParameter(f"unknown parameter '{key}'")
            v = _cast(p, value, strict=True)
            if v is None:
                raise InvalidParameter(f"{key}: cannot read {value!r} as {p.type.value}")
            if p.range is not None:
                lo, hi = p.range
                if not lo <= v <= hi:
                    raise InvalidParameter(f"{key}={v} outside [{lo}, {hi}]")
            result[key] = v
        return result

    def validate_and_clamp(self, raw: dict) -> dict:
        """Lenient check for presets: unknown keys and unreadable values are
        dropped, the rest are cast and clamped to range. Defaults fill gaps.
        """
        result = self.default_params()
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            v = _cast(p, value)
            if v is None:
                continue
            if p.range is not None:
                lo, hi = p.range
                v = max(lo, min(hi, v))
            result[key] = v
        return result

    def randomize(self, rng: UniformSource, base: dict | None = None) -> dict:
        """Re-roll every parameter not marked randomize_skip, uniformly in range."""
        result = dict(base) if base is not None else self.default_params()
        for p in self._params:
            if p.randomize_skip:
                continue
            if p.type == ParamType.BOOL:
                result[p.key] = rng.next() < 0.5
            elif p.range is not None:
                lo, hi = p.range
                if p.type == ParamType.INT:
                    result[p.key] = min(hi, lo + int(rng.next() * (hi - lo + 1)))
                else:
                    result[p.key] = lo + rng.next() * (hi - lo)
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)


def _cast(p: ParamDef, value, strict: bool = False):
    """Cast to the param's type; None if it can't be read.

    strict: INT params must be whole numbers instead of being rounded.
    """
    try:
        if p.type == ParamType.BOOL:
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if p.type == ParamType.INT:
            v = float(value)
            if strict and not v.is_integer():
                return None
            return int(round(v))
        v = float(value)
        return v if math.isfinite(v) else None
    except (TypeError, ValueError, OverflowError):
        return None
