import re
from typing import Optional

_NUMBER = re.compile(r"\d*\.?\d+")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def match_key(name: Optional[str]) -> str:
    """Case/whitespace-insensitive identity of a test name."""
    return (name or "").strip().lower()


def is_blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def first_number(text: Optional[str]) -> Optional[float]:
    """First decimal literal embedded anywhere in `text` ("*7.7 H" -> 7.7)."""
    m = _NUMBER.search(text or "")
    return float(m.group(0)) if m else None


def leading_float(text: Optional[str]) -> Optional[float]:
    """Float at the start of `text`, ignoring trailing junk ("17.5 g/dL" -> 17.5)."""
    m = _LEADING_FLOAT.match(text or "")
    return float(m.group(1)) if m else None
