# labreport/services/report_service.py
from dataclasses import replace
from typing import Any, Dict, Optional

from loguru import logger

from labreport.commons.report_engine import ReportEngine
from labreport.engine import merger
from labreport.engine.derived import derive_dependent_values
from labreport.engine.identifiers import apply_name_prefix
from labreport.engine.models import Report
from labreport.engine.ranges import Age
from labreport.engine.text import is_blank
from labreport.validation.validators import report_from_payload


class ReportService:
    """Edit-load, save and view flows for a report. Reports are never mutated in place."""

    def __init__(self, engine: ReportEngine):
        self.engine = engine

    def load_for_edit(self, report: Report) -> Report:
        sex, age = report.patient.sex, report.patient.age
        sections = [
            replace(s, rows=self.engine.merge(s.name, s.report_group, s.rows, sex, age))
            for s in report.sections
        ]
        return replace(report, sections=sections)

    def change_demographics(self, report: Report, sex: Optional[str] = None, age: Age = None) -> Report:
        """New sex/age: ranges and the name prefix are recomputed, nothing cached."""
        patient = replace(
            report.patient,
            sex=sex or report.patient.sex,
            age=report.patient.age if age is None else age,
        )
        patient = replace(patient, name=apply_name_prefix(patient.name, patient.sex))
        sections = []
        for s in report.sections:
            template = self.engine.catalog.get_tests_for_group(s.report_group)
            rows = merger.reresolve_ranges(
                template, s.rows, patient.sex, patient.age, self.engine.pediatric_age_cutoff
            )
            sections.append(replace(s, rows=rows))
        return replace(report, patient=patient, sections=sections)

    def update_results(self, report: Report) -> Report:
        sections = [replace(s, rows=derive_dependent_values(s.rows)) for s in report.sections]
        return replace(report, sections=sections)

    def prepare_for_save(self, report: Report) -> Report:
        kept = []
        for s in report.sections:
            rows = merger.select_rows_for_save(s.rows)
            dropped = len([r for r in s.rows if r.is_header]) - len([r for r in rows if r.is_header])
            if dropped:
                logger.debug(f"Section {s.name!r}: {dropped} header(s) with no rows beneath dropped")
            if is_blank(s.name) or not any(not r.is_header for r in rows):
                logger.debug(f"Section {s.name!r} has nothing to save, skipped")
                continue
            kept.append(replace(s, rows=rows))
        return replace(report, sections=kept)

    def render(self, report: Report, page_size: Optional[int] = None) -> Dict:
        if page_size is None:
            page_size = self.engine.settings.composition.page_size
        composed = self.engine.composer.compose(report, page_size)
        logger.info(
            f"Report {report.sid or '-'} composed: {len(composed.sections)} section(s), "
            f"{sum(len(s.pages) for s in composed.sections)} page(s)"
        )
        return self.engine.composer.to_payload(composed)

    def render_payload(self, payload: Dict[str, Any], page_size: Optional[int] = None) -> Dict:
        return self.render(report_from_payload(payload), page_size)
