from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from loguru import logger

from labreport.engine.headers import Cluster, HeaderPolicy
from labreport.engine.models import GROUP_HEADER, TEST, TestDefinition
from labreport.engine.text import match_key


class CatalogError(ValueError):
    pass


def _entry(group: str, raw: Any) -> TestDefinition:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict) or not str(raw.get("name") or "").strip():
        raise CatalogError(f"group {group!r}: every entry needs a name, got {raw!r}")
    kind = raw.get("kind", TEST)
    if kind not in (TEST, GROUP_HEADER):
        raise CatalogError(f"group {group!r}: entry {raw['name']!r} has unknown kind {kind!r}")
    return TestDefinition(
        name=str(raw["name"]).strip(),
        specimen=raw.get("specimen") or "",
        unit=raw.get("unit") or "",
        reference_range_expr=str(raw.get("range") or ""),
        method=raw.get("method") or "",
        clinical_note=raw.get("note"),
        kind=kind,
    )


class Catalog:
    """Read-only report groups, their ordered test definitions and print clusters."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        data = data or {}
        self._groups: Dict[str, Tuple[TestDefinition, ...]] = {}
        for group, entries in (data.get("groups") or {}).items():
            if not isinstance(entries, list):
                raise CatalogError(f"group {group!r} must list its tests")
            self._groups[match_key(group)] = tuple(_entry(group, e) for e in entries)
        self._names = {match_key(g): g for g in (data.get("groups") or {})}
        self.policy = self._policy(data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Catalog":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        cat = cls(data)
        logger.info(f"Catalog loaded from {path}: {len(cat.groups)} group(s)")
        return cat

    @staticmethod
    def _policy(data: Dict[str, Any]) -> HeaderPolicy:
        clusters = []
        for c in data.get("clusters") or []:
            try:
                clusters.append(Cluster.of(c["name"], c.get("match") or [], c.get("trigger", "membership")))
            except (KeyError, TypeError, ValueError) as ex:
                raise CatalogError(f"invalid cluster {c!r}: {ex}") from ex
        return HeaderPolicy(
            clusters=tuple(clusters),
            omit_when_blank=frozenset(match_key(n) for n in data.get("omit_when_blank") or []),
            complete_panels=tuple(
                frozenset(match_key(n) for n in panel) for panel in data.get("complete_panels") or []
            ),
        )

    @property
    def groups(self) -> List[str]:
        return list(self._names.values())

    def get_tests_for_group(self, report_group: Optional[str]) -> Tuple[TestDefinition, ...]:
        """Template for a group; empty means free-form, do not merge."""
        return self._groups.get(match_key(report_group), ())

    def get_test_template(self, section_name: str, test_name: str) -> Optional[TestDefinition]:
        key = match_key(test_name)
        if not key:
            return None
        tests = self.get_tests_for_group(section_name)
        # 1) exact within the section's group
        hit = next((t for t in tests if match_key(t.name) == key), None)
        # 2) partial within the same group
        hit = hit or next((t for t in tests if key in match_key(t.name)), None)
        if hit:
            return hit
        # 3) exact anywhere
        for group in self._groups.values():
            for t in group:
                if match_key(t.name) == key:
                    return t
        return None
