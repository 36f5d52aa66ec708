"""
Terminal colour palette used by Tags.

Colours are the 256-value ANSI table. The first 16 codes have names; the rest
are plain indexed codes. The actual rendering depends on the terminal theme.
"""
from enum import IntEnum
from typing import Optional, Union

# Persisted in place of an optional colour that was never set
UNSET = -1
MAX_CODE = 255


class AnsiColor(IntEnum):
    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    GRAY = 7
    DARK_GRAY = 8
    LIGHT_RED = 9
    LIGHT_GREEN = 10
    LIGHT_YELLOW = 11
    LIGHT_BLUE = 12
    LIGHT_MAGENTA = 13
    LIGHT_CYAN = 14
    WHITE = 15


Color = Union[AnsiColor, int]


def to_color(code: int) -> Color:
    """Turn a stored code into a colour, named where the palette has a name."""
    if isinstance(code, bool) or not isinstance(code, int) or not 0 <= code <= MAX_CODE:
        raise ValueError(f"invalid colour code: {code!r}")
    if code < len(AnsiColor):
        return AnsiColor(code)
    return int(code)


def encode(color: Optional[Color]) -> int:
    if color is None:
        return UNSET
    return int(to_color(color))


def decode(code: int) -> Optional[Color]:
    if code == UNSET:
        return None
    return to_color(code)
