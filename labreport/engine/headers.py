"""Synthetic section headers for print/view composition.

Every decision is taken against the full section (`all_tests`), never the
window being rendered, so a section split across pages gets exactly the
headers a single pass would give it.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Literal, Optional, Sequence, Tuple

from .models import ResultRow, TestRow
from .text import is_blank, match_key

MEMBERSHIP = "membership"
SENTINEL = "sentinel"
TRIGGER_STYLES = (MEMBERSHIP, SENTINEL)


@dataclass(frozen=True)
class Cluster:
    name: str
    match_names: FrozenSet[str]
    trigger: Literal["membership", "sentinel"] = MEMBERSHIP

    @classmethod
    def of(cls, name: str, match_names: Iterable[str], trigger: str = MEMBERSHIP) -> "Cluster":
        if trigger not in TRIGGER_STYLES:
            raise ValueError(f"unknown trigger style {trigger!r} for cluster {name!r}")
        return cls(name, frozenset(match_key(n) for n in match_names), trigger)

    def __contains__(self, name: str) -> bool:
        return match_key(name) in self.match_names


@dataclass(frozen=True)
class HeaderPolicy:
    clusters: Tuple[Cluster, ...] = ()
    # rows hidden while their result is blank
    omit_when_blank: FrozenSet[str] = frozenset()
    # panels shown only when every member has a result
    complete_panels: Tuple[FrozenSet[str], ...] = ()

    def cluster_for(self, name: str) -> Optional[Cluster]:
        # first rule wins on overlapping membership
        return next((c for c in self.clusters if name in c), None)


@dataclass
class ViewItem:
    kind: Literal["header", "row"]
    text: str
    index: int  # position in the full section
    row: Optional[ResultRow] = field(default=None, repr=False)


def _result(row: ResultRow) -> str:
    return row.result if isinstance(row, TestRow) else ""


def visibility(all_tests: Sequence[ResultRow], policy: HeaderPolicy) -> List[bool]:
    results = {}
    for row in all_tests:
        results.setdefault(match_key(row.name), _result(row))

    hidden_panels = set()
    for panel in policy.complete_panels:
        if any(is_blank(results.get(member)) for member in panel):
            hidden_panels |= panel

    flags = []
    for row in all_tests:
        key = match_key(row.name)
        if key in policy.omit_when_blank and is_blank(_result(row)):
            flags.append(False)
        elif key in hidden_panels:
            flags.append(False)
        else:
            flags.append(True)
    return flags


def header_before(
    all_tests: Sequence[ResultRow],
    index: int,
    policy: HeaderPolicy,
    visible: Optional[Sequence[bool]] = None,
) -> Optional[str]:
    """Name of the synthetic header to print before row `index`, if any."""
    if visible is None:
        visible = visibility(all_tests, policy)
    if not visible[index]:
        return None

    row = all_tests[index]
    if row.is_header:
        return None
    cluster = policy.cluster_for(row.name)
    if cluster is None:
        return None

    physical = match_key(cluster.name)
    if any(r.is_header and match_key(r.name) == physical for r in all_tests):
        return None

    if cluster.trigger == MEMBERSHIP:
        prev = all_tests[index - 1] if index > 0 else None
        if prev is not None and not prev.is_header and policy.cluster_for(prev.name) is cluster:
            return None
    return cluster.name


def compose_window(
    all_tests: Sequence[ResultRow],
    start: int,
    stop: Optional[int],
    policy: HeaderPolicy,
) -> List[ViewItem]:
    """View items for `all_tests[start:stop]`, headers included."""
    visible = visibility(all_tests, policy)
    stop = len(all_tests) if stop is None else min(stop, len(all_tests))
    items: List[ViewItem] = []
    for i in range(max(start, 0), stop):
        if not visible[i]:
            continue
        header = header_before(all_tests, i, policy, visible)
        if header:
            items.append(ViewItem("header", header, i))
        items.append(ViewItem("row", all_tests[i].name, i, all_tests[i]))
    return items


def page_bounds(total: int, page_size: Optional[int]) -> List[Tuple[int, int]]:
    if not page_size or page_size <= 0 or total <= page_size:
        return [(0, total)]
    return [(s, min(s + page_size, total)) for s in range(0, total, page_size)]


def compose_pages(
    all_tests: Sequence[ResultRow], policy: HeaderPolicy, page_size: Optional[int] = None
) -> List[List[ViewItem]]:
    return [compose_window(all_tests, s, e, policy) for s, e in page_bounds(len(all_tests), page_size)]
