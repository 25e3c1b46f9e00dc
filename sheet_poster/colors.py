from __future__ import annotations

import math
import re
from typing import Any, Dict, Mapping, Tuple

_HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)

WHITE: Tuple[int, int, int] = (255, 255, 255)


def _round_channel(value: float) -> int:
    # Half-up rounding; Python's round() would send 0.5 to the even neighbour.
    return int(math.floor(value * 255 + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(255, value))


def parse_hex(value: str) -> Tuple[int, int, int] | None:
    """Return the integer RGB triple for ``#rrggbb``/``rrggbb`` or ``None``."""

    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        return None
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def color_to_rgb(color: Any) -> Tuple[int, int, int]:
    """Convert a hex string or a fractional RGB mapping to integer channels.

    Malformed hex strings and unsupported values fall back to white so a colour
    comparison never raises on bad sheet data.
    """

    if isinstance(color, str):
        return parse_hex(color) or WHITE
    if isinstance(color, Mapping):
        channels = []
        for key in ("red", "green", "blue"):
            raw = color.get(key) or 0
            try:
                channels.append(_clamp(_round_channel(float(raw))))
            except (TypeError, ValueError):
                channels.append(0)
        return channels[0], channels[1], channels[2]
    return WHITE


def normalize_color(color: Any) -> str:
    """Return the canonical ``"r,g,b"`` form used for comparisons."""

    red, green, blue = color_to_rgb(color)
    return f"{red},{green},{blue}"


def colors_match(first: Any, second: Any) -> bool:
    return normalize_color(first) == normalize_color(second)


def to_api_color(color: Any) -> Dict[str, float]:
    """Build a Sheets API ``Color`` object for a background mutation."""

    red, green, blue = color_to_rgb(color)
    return {
        "red": red / 255,
        "green": green / 255,
        "blue": blue / 255,
        "alpha": 1,
    }
