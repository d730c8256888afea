"""Helpers for parsing dollar amounts and election years from extracted text."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

__all__ = ["parse_amount", "parse_year"]

_STRIP_PATTERN = re.compile(r"[$,\s ]")
_SUFFIXES = {"K": Decimal(1_000), "M": Decimal(1_000_000), "B": Decimal(1_000_000_000)}
_YEAR_PATTERN = re.compile(r"\b(\d{4})\b")


def parse_amount(raw: Any) -> int:
    """Parse a dollar amount such as ``"$1.2M"``, ``"350K"`` or ``12500`` into whole dollars."""
    if raw is None or isinstance(raw, bool):
        raise ValueError("amount is required")
    if isinstance(raw, (int, float, Decimal)):
        value = Decimal(str(raw))
    else:
        text = _STRIP_PATTERN.sub("", str(raw)).upper()
        if not text:
            raise ValueError("amount is required")
        multiplier = Decimal(1)
        if text[-1] in _SUFFIXES:
            multiplier = _SUFFIXES[text[-1]]
            text = text[:-1]
        try:
            value = Decimal(text) * multiplier
        except InvalidOperation as exc:
            raise ValueError(f"unable to parse amount from '{raw}'") from exc

    if not value.is_finite():
        raise ValueError(f"unable to parse amount from '{raw}'")
    if value < 0:
        raise ValueError(f"amount must be non-negative, got '{raw}'")
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_year(raw: Any) -> Optional[str]:
    """Return a four digit year string, or None when the value holds no year."""
    if raw is None or isinstance(raw, bool):
        return None
    match = _YEAR_PATTERN.search(str(raw))
    return match.group(1) if match else None
