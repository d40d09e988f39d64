"""Human-facing identifiers (SID, patient id) derived from existing values.

These are read-max-then-increment transforms with no reservation: two
callers that read the same last value derive the same next value. The
storage layer's uniqueness constraint is what catches that, and the
caller retries with a fresh read.
"""
import re
from typing import Iterable, Optional

SID_SEED = "1001"
PATIENT_ID_SEED = "8200070094"
NAME_PREFIXES = ("Mr.", "Mrs.", "Ms.", "Miss.", "Dr.")

_TRAILING_DIGITS = re.compile(r"(\d+)$")
_PREFIX = re.compile(
    r"^(?:%s)\s*" % "|".join(re.escape(p) for p in NAME_PREFIXES), re.IGNORECASE
)


def _increment(last: str, keep_width: bool) -> str:
    m = _TRAILING_DIGITS.search(last)
    if not m:
        return f"{last}1"
    digits = m.group(1)
    nxt = str(int(digits) + 1)
    if keep_width:
        nxt = nxt.zfill(len(digits))
    return f"{last[:m.start()]}{nxt}"


def next_sid(last: Optional[str], seed: str = SID_SEED) -> str:
    """'SID1099' -> 'SID1100'; 'ABC' -> 'ABC1'; nothing -> seed. Width may grow."""
    if not last:
        return seed
    return _increment(last, keep_width=False)


def trailing_number(value: Optional[str]) -> Optional[int]:
    m = _TRAILING_DIGITS.search(value or "")
    return int(m.group(1)) if m else None


def latest_sid(values: Iterable[Optional[str]]) -> Optional[str]:
    """Existing SID with the largest numeric suffix (later wins ties)."""
    best, best_n = None, None
    for v in values:
        if not v:
            continue
        n = trailing_number(v)
        n = -1 if n is None else n
        if best_n is None or n >= best_n:
            best, best_n = v, n
    return best


def next_patient_id(existing: Iterable[Optional[str]], seed: str = PATIENT_ID_SEED) -> str:
    """Increment the numerically largest patient id, keeping its zero padding."""
    usable = [pid for pid in existing if pid and "SAMPLE" not in pid]
    # an id without digits is still used when nothing numeric beats it
    best, best_n = (usable[0] if usable else None), 0
    for pid in usable:
        digits = re.sub(r"\D", "", pid)
        if digits and int(digits) > best_n:
            best, best_n = pid, int(digits)
    return _increment(best or seed, keep_width=True)


def apply_name_prefix(name: str, sex: Optional[str]) -> str:
    bare = _PREFIX.sub("", name or "")
    if not bare.strip():
        return name
    prefix = {"male": "Mr.", "female": "Mrs."}.get((sex or "").strip().lower())
    return f"{prefix} {bare}" if prefix else bare
