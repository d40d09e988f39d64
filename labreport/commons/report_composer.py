from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from labreport.engine.classifier import classify
from labreport.engine.headers import HeaderPolicy, ViewItem, compose_pages
from labreport.engine.models import NORMAL, NoteRow, Report, ResultRow, Section, TestRow, Verdict
from labreport.engine.ranges import resolve
from labreport.engine.text import is_blank, match_key
from labreport.helpers.catalog import Catalog


@dataclass
class ComposedLine:
    kind: Literal["header", "row", "note"]
    text: str
    index: int
    synthetic: bool = False
    row: Optional[ResultRow] = None
    verdict: Verdict = NORMAL
    reference_range: str = ""
    clinical_note: Optional[str] = None


@dataclass
class ComposedSection:
    name: str
    report_group: str
    pages: List[List[ComposedLine]] = field(default_factory=list)


@dataclass
class ComposedReport:
    report: Report
    sections: List[ComposedSection]


class ReportComposer:
    """Turns a stored report into print-ready lines: ranges resolved, results
    flagged, synthetic cluster headers placed, pages split."""

    def __init__(self, catalog: Catalog, pediatric_age_cutoff: Optional[float] = None):
        self.catalog = catalog
        self.pediatric_age_cutoff = pediatric_age_cutoff

    @property
    def policy(self) -> HeaderPolicy:
        return self.catalog.policy

    def _template_expr(self, section: Section, row: ResultRow) -> str:
        key = match_key(row.name)
        for t in self.catalog.get_tests_for_group(section.report_group or section.name):
            if match_key(t.name) == key:
                return t.reference_range_expr
        t = self.catalog.get_test_template(section.name, row.name)
        return t.reference_range_expr if t else ""

    def display_range(self, section: Section, row: TestRow, sex: str, age) -> str:
        expr = row.reference_range if not is_blank(row.reference_range) else self._template_expr(section, row)
        return resolve(expr, sex, age, self.pediatric_age_cutoff)

    def _line(self, section: Section, item: ViewItem, report: Report) -> ComposedLine:
        if item.kind == "header":
            return ComposedLine("header", item.text, item.index, synthetic=True)
        row = item.row
        if row.is_header:
            return ComposedLine("header", row.name, item.index, row=row)
        if isinstance(row, NoteRow):
            return ComposedLine("note", row.text, item.index, row=row)

        p = report.patient
        shown = self.display_range(section, row, p.sex, p.age)
        note = None
        if report.include_notes:
            t = self.catalog.get_test_template(section.report_group or section.name, row.test_name)
            note = t.clinical_note if t else None
        return ComposedLine(
            "row",
            row.test_name,
            item.index,
            row=row,
            verdict=classify(row.result, shown, p.sex),
            reference_range=shown,
            clinical_note=note,
        )

    def compose_section(self, section: Section, report: Report, page_size: Optional[int] = None) -> ComposedSection:
        pages = compose_pages(section.rows, self.policy, page_size)
        return ComposedSection(
            name=section.name,
            report_group=section.report_group,
            pages=[[self._line(section, item, report) for item in page] for page in pages],
        )

    def compose(self, report: Report, page_size: Optional[int] = None) -> ComposedReport:
        sections = [
            self.compose_section(s, report, page_size) for s in report.sections if s.rows
        ]
        return ComposedReport(report=report, sections=sections)

    def to_payload(self, composed: ComposedReport) -> Dict:
        """Plain, JSON-ready mapping of a composed report for the render layer."""
        r = composed.report
        return {
            "sid": r.sid,
            "include_header": r.include_header,
            "include_notes": r.include_notes,
            "patient": {
                "name": r.patient.name,
                "id": r.patient.id,
                "age": r.patient.age,
                "sex": r.patient.sex,
                "referred_by": r.patient.referred_by,
                "collected_at": r.patient.collected_at,
                "received_at": r.patient.received_at,
                "reported_at": r.patient.reported_at,
            },
            "sections": [
                {
                    "name": s.name,
                    "report_group": s.report_group,
                    "pages": [[self._line_payload(line) for line in page] for page in s.pages],
                }
                for s in composed.sections
            ],
        }

    @staticmethod
    def _line_payload(line: ComposedLine) -> Dict:
        out = {"kind": line.kind, "text": line.text, "synthetic": line.synthetic}
        if line.kind == "row":
            row = line.row
            out.update(
                {
                    "specimen": row.specimen,
                    "result": row.result,
                    "units": row.units,
                    "reference_range": line.reference_range,
                    "method": row.method,
                    "notes": row.notes,
                    "abnormal": line.verdict.abnormal,
                    "direction": line.verdict.direction,
                    "clinical_note": line.clinical_note,
                }
            )
        return out
