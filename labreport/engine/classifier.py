from typing import Optional

from .models import NORMAL, Verdict
from .ranges import has_sex_clauses, select_sex_clause
from .text import first_number, leading_float

HIGH = Verdict(abnormal=True, direction="high")
LOW = Verdict(abnormal=True, direction="low")


def clean_range(range_text: Optional[str], sex: Optional[str] = None) -> str:
    cleaned = (range_text or "").strip()
    if sex and has_sex_clauses(cleaned):
        picked = select_sex_clause(cleaned, sex)
        if picked is not None:
            cleaned = picked
    return cleaned


def classify(result: Optional[str], range_text: Optional[str], sex: Optional[str] = None) -> Verdict:
    """Flag a result against its reference range.

    Shapes, tried in order: "lo-hi", "< max" (result >= max is high),
    "> min" (result <= min is low). Anything unparseable is normal.
    """
    value = first_number(result)
    if value is None:
        return NORMAL

    cleaned = clean_range(range_text, sex)
    if not cleaned:
        return NORMAL

    if "-" in cleaned:
        parts = cleaned.split("-")
        if len(parts) != 2:
            return NORMAL
        low, high = leading_float(parts[0]), leading_float(parts[1])
        if low is None or high is None:
            return NORMAL
        if value < low:
            return LOW
        if value > high:
            return HIGH
        return NORMAL

    if cleaned.startswith("<"):
        limit = leading_float(cleaned[1:].lstrip("="))
        if limit is not None and value >= limit:
            return HIGH
        return NORMAL

    if cleaned.startswith(">"):
        limit = leading_float(cleaned[1:].lstrip("="))
        if limit is not None and value <= limit:
            return LOW
        return NORMAL

    return NORMAL
