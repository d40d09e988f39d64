"""Template / persisted-row reconciliation and save-time row selection."""
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .models import NoteRow, ResultRow, TestDefinition, TestRow
from .ranges import Age, resolve
from .text import is_blank, match_key


def _first_by_name(rows: Sequence[ResultRow]) -> Dict[str, int]:
    # first occurrence wins; later duplicates become extras
    index: Dict[str, int] = {}
    for i, row in enumerate(rows):
        index.setdefault(match_key(row.name), i)
    return index


def _row_from_template(
    entry: TestDefinition, sex: str, age: Age, pediatric_age_cutoff: Optional[float]
) -> ResultRow:
    if entry.is_header:
        return NoteRow(text=entry.name, is_header=True)
    return TestRow(
        test_name=entry.name,
        specimen=entry.specimen,
        units=entry.unit,
        reference_range=resolve(entry.reference_range_expr, sex, age, pediatric_age_cutoff),
        method=entry.method,
    )


def _row_from_persisted(
    entry: TestDefinition,
    row: ResultRow,
    sex: str,
    age: Age,
    pediatric_age_cutoff: Optional[float],
) -> ResultRow:
    if isinstance(row, NoteRow):
        return replace(row, is_header=entry.is_header)
    return replace(
        row,
        specimen=row.specimen or entry.specimen,
        units=row.units or entry.unit,
        method=row.method or entry.method,
        reference_range=(
            row.reference_range
            if not is_blank(row.reference_range)
            else resolve(entry.reference_range_expr, sex, age, pediatric_age_cutoff)
        ),
        is_header=entry.is_header,
    )


def merge(
    template: Sequence[TestDefinition],
    persisted_rows: Sequence[ResultRow],
    sex: str,
    age: Age = None,
    pediatric_age_cutoff: Optional[float] = None,
) -> List[ResultRow]:
    """Lay persisted rows over a template.

    Template tests come first in template order; rows with no template
    match ("extras") follow in their persisted order. An empty template
    means a free-form section and returns the persisted rows as they are.
    """
    if not template:
        return list(persisted_rows)

    by_name = _first_by_name(persisted_rows)
    used = set()
    merged: List[ResultRow] = []
    for entry in template:
        i = by_name.get(match_key(entry.name))
        if i is None or i in used:
            merged.append(_row_from_template(entry, sex, age, pediatric_age_cutoff))
            continue
        used.add(i)
        merged.append(_row_from_persisted(entry, persisted_rows[i], sex, age, pediatric_age_cutoff))

    for i, row in enumerate(persisted_rows):
        if i not in used:
            merged.append(replace(row, is_header=False))
    return merged


def reresolve_ranges(
    template: Sequence[TestDefinition],
    rows: Sequence[ResultRow],
    sex: str,
    age: Age = None,
    pediatric_age_cutoff: Optional[float] = None,
) -> List[ResultRow]:
    """Recompute ranges of template-backed rows after a sex/age change."""
    exprs = {match_key(t.name): t.reference_range_expr for t in template if not t.is_header}
    out: List[ResultRow] = []
    for row in rows:
        key = match_key(row.name)
        if isinstance(row, TestRow) and key in exprs and exprs[key]:
            row = replace(row, reference_range=resolve(exprs[key], sex, age, pediatric_age_cutoff))
        out.append(row)
    return out


def is_candidate(row: ResultRow) -> bool:
    if row.is_header:
        return not is_blank(row.name)
    if isinstance(row, NoteRow):
        return not is_blank(row.text)
    return not is_blank(row.test_name) and not is_blank(row.result)


def drop_orphan_headers(rows: Sequence[ResultRow]) -> List[ResultRow]:
    """Keep a header only if some non-header row follows it."""
    kept: List[ResultRow] = []
    for i, row in enumerate(rows):
        if row.is_header and not any(not r.is_header for r in rows[i + 1:]):
            continue
        kept.append(row)
    return kept


def select_rows_for_save(rows: Sequence[ResultRow]) -> List[ResultRow]:
    return drop_orphan_headers([r for r in rows if is_candidate(r)])
