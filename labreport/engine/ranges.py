import re
from typing import List, Optional, Union

from .text import leading_float

_SEX_MARKERS = ("M:", "F:")
_CLAUSE_SPLIT = re.compile(r"[,;]")
_CHILD_CLAUSE = re.compile(r"(?:Children|Child):\s*([^,;\n\r]+)", re.IGNORECASE)

Age = Union[int, float, str, None]


def has_sex_clauses(expr: Optional[str]) -> bool:
    return bool(expr) and any(m in expr for m in _SEX_MARKERS)


def sex_key(sex: Optional[str]) -> str:
    """'Male' (any case) selects the M: clause, anything else the F: clause."""
    return "M:" if (sex or "").strip().lower().startswith("m") else "F:"


def select_sex_clause(expr: str, sex: Optional[str]) -> Optional[str]:
    """Return the clause body keyed for `sex`, or None when no clause matches."""
    key = sex_key(sex)
    clauses: List[str] = [c.strip() for c in _CLAUSE_SPLIT.split(expr)]
    for clause in clauses:
        if clause.upper().startswith(key):
            return clause[len(key):].strip()
    return None


def parse_age(age: Age) -> Optional[float]:
    if age is None or isinstance(age, bool):
        return None
    if isinstance(age, (int, float)):
        return float(age)
    return leading_float(age)


def resolve(
    expr: Optional[str],
    sex: Optional[str],
    age: Age = None,
    pediatric_age_cutoff: Optional[float] = None,
) -> str:
    """Resolve a reference-range expression into its display string.

    "M: 13-17, F: 12-15" -> "13-17" for Male, "12-15" otherwise. Expressions
    without sex-keyed clauses come back unchanged, so resolving a resolved
    range is a no-op. With `pediatric_age_cutoff` set, a "Children:" clause
    wins for patients younger than the cutoff.
    """
    if not expr:
        return expr or ""

    if pediatric_age_cutoff is not None:
        years = parse_age(age)
        if years is not None and years < pediatric_age_cutoff:
            m = _CHILD_CLAUSE.search(expr)
            if m:
                return m.group(1).strip()

    if not has_sex_clauses(expr):
        return expr
    picked = select_sex_clause(expr, sex)
    return expr if picked is None else picked
