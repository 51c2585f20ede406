"""Defensive query parameter parsing: bad input falls back, never 4xx."""

from __future__ import annotations

from typing import Any


def parse_int(value: Any, default: int, minimum: int | None = None, maximum: int | None = None) -> int:
    """Parse an int from a raw query value; malformed -> default, out of range -> clamped."""
    if value is None or isinstance(value, bool):
        n = default
    else:
        try:
            n = int(str(value).strip())
        except ValueError:
            try:
                n = int(float(str(value).strip()))
            except (ValueError, OverflowError):
                n = default
    if minimum is not None and n < minimum:
        n = minimum
    if maximum is not None and n > maximum:
        n = maximum
    return n


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default
