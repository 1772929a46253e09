"""Hex color value used by prompts."""

from __future__ import annotations

import re
from dataclasses import dataclass

from huepick.errors import InvalidColorError

_HEX_DIGITS = re.compile(r"[0-9a-f]+")


def sanitize_hex(raw: object) -> str | None:
    """Return the canonical ``#rrggbb`` form of ``raw`` or ``None``.

    Accepts three or six hex digits, with or without the leading ``#``,
    in any case. Surrounding whitespace is ignored.
    """

    if not isinstance(raw, str):
        return None
    text = raw.strip().lower().removeprefix("#")
    if len(text) not in (3, 6) or not _HEX_DIGITS.fullmatch(text):
        return None
    if len(text) == 3:
        text = "".join(digit * 2 for digit in text)
    return f"#{text}"


@dataclass(frozen=True)
class Color:
    """An RGB color in canonical ``#rrggbb`` form."""

    hex: str

    def __post_init__(self) -> None:
        canonical = sanitize_hex(self.hex)
        if canonical is None:
            raise InvalidColorError(self.hex)
        object.__setattr__(self, "hex", canonical)

    @classmethod
    def parse(cls, raw: object) -> Color:
        if isinstance(raw, Color):
            return raw
        return cls(raw)  # type: ignore[arg-type]

    @property
    def rgb(self) -> tuple[int, int, int]:
        value = int(self.hex[1:], 16)
        return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF

    def __str__(self) -> str:
        return self.hex


BLACK = Color("#000000")
