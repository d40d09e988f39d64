from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

import yaml
from loguru import logger

from labreport.commons.report_composer import ReportComposer
from labreport.commons.types import Settings
from labreport.engine import classifier, identifiers, merger, ranges
from labreport.engine.models import ResultRow, Verdict
from labreport.helpers.catalog import Catalog

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"
DEFAULT_SETTINGS = CONFIG_DIR / "settings.yaml"


class ReportEngine:
    """Facade over the composition engine, configured from settings.yaml.

    Accepts a path to the YAML file, an already loaded dict, or nothing
    (bundled defaults). A `catalog` argument overrides paths.catalog.
    """

    def __init__(self, config_path_or_obj: Any = None, catalog: Optional[Catalog] = None):
        base = CONFIG_DIR
        if config_path_or_obj is None:
            config_path_or_obj = str(DEFAULT_SETTINGS)
        if isinstance(config_path_or_obj, (str, Path)):
            with open(config_path_or_obj, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            base = Path(config_path_or_obj).resolve().parent
        elif isinstance(config_path_or_obj, dict):
            raw = config_path_or_obj
        else:
            raw = {}
        self.settings = Settings.model_validate(raw)

        if catalog is None:
            cat_path = Path(self.settings.paths.get("catalog", "catalog.yaml"))
            if not cat_path.is_absolute():
                cat_path = base / cat_path
            catalog = Catalog.load(cat_path)
        self.catalog = catalog
        self.composer = ReportComposer(catalog, self.pediatric_age_cutoff)

    @property
    def pediatric_age_cutoff(self) -> Optional[float]:
        return self.settings.ranges.pediatric_age_cutoff

    def resolve(self, expr: str, sex: str, age: ranges.Age = None) -> str:
        return ranges.resolve(expr, sex, age, self.pediatric_age_cutoff)

    def classify(self, result: str, range_text: str, sex: Optional[str] = None) -> Verdict:
        return classifier.classify(result, range_text, sex)

    def merge(
        self,
        section_name: str,
        report_group: str,
        persisted_rows: Sequence[ResultRow],
        sex: str,
        age: ranges.Age = None,
    ) -> List[ResultRow]:
        template = self.catalog.get_tests_for_group(report_group)
        if not template:
            logger.debug(f"Section {section_name!r}: free-form, no template for {report_group!r}")
            return list(persisted_rows)
        merged = merger.merge(template, persisted_rows, sex, age, self.pediatric_age_cutoff)
        logger.debug(
            f"Section {section_name!r}: {len(template)} template row(s), "
            f"{len(merged) - len(template)} extra(s)"
        )
        return merged

    def next_sid(self, existing: Iterable[Optional[str]]) -> str:
        return identifiers.next_sid(identifiers.latest_sid(existing), self.settings.identifiers.sid_seed)

    def next_patient_id(self, existing: Iterable[Optional[str]]) -> str:
        return identifiers.next_patient_id(existing, self.settings.identifiers.patient_id_seed)
