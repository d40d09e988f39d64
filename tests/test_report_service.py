import pytest

from labreport.commons.report_engine import ReportEngine
from labreport.engine.models import NoteRow, Patient, Report, Section, TestRow
from labreport.helpers.catalog import Catalog
from labreport.services.report_service import ReportService


@pytest.fixture(scope="module")
def engine():
    return ReportEngine()


@pytest.fixture
def svc(engine):
    return ReportService(engine)


def make_report(rows, group="HEMATOLOGY", sex="Female", age=30, **kw):
    return Report(
        patient=Patient(name="Priya", id="8200070095", age=age, sex=sex),
        sections=[Section(name=group or "Free", report_group=group, rows=rows)],
        sid="SID1100",
        **kw,
    )


def test_engine_defaults(engine):
    assert engine.pediatric_age_cutoff is None
    assert engine.settings.identifiers.sid_seed == "1001"
    assert engine.next_sid([]) == "1001"
    assert engine.next_sid(["SID1099", "SID1005"]) == "SID1100"
    assert engine.next_patient_id([]) == "8200070095"
    assert engine.resolve("M: 13-17, F: 12-15", "Male") == "13-17"
    assert engine.classify("18.2", "13.5-17.5").direction == "high"


def test_engine_from_dict_and_path(tmp_path):
    cfg = {"ranges": {"pediatric_age_cutoff": 14}, "identifiers": {"sid_seed": "S-1"}}
    eng = ReportEngine(cfg)
    assert eng.pediatric_age_cutoff == 14
    assert eng.next_sid([None]) == "S-1"

    (tmp_path / "cat.yaml").write_text("groups:\n  MINI:\n    - {name: Urea, range: '15-40'}\n", encoding="utf-8")
    (tmp_path / "settings.yaml").write_text("paths:\n  catalog: cat.yaml\n", encoding="utf-8")
    eng = ReportEngine(str(tmp_path / "settings.yaml"))
    assert eng.catalog.groups == ["MINI"]


def test_merge_unknown_group_is_free_form(engine):
    rows = [TestRow(test_name="Anything", result="1")]
    assert engine.merge("Misc", "NOT A GROUP", rows, "Male") == rows
    assert engine.merge("Misc", "", rows, "Male") == rows


def test_load_for_edit_merges_each_section(svc):
    report = make_report([TestRow(test_name="Peripheral Smear", result="Normal"), TestRow(test_name="Hemoglobin", result="11")])
    loaded = svc.load_for_edit(report)
    rows = loaded.sections[0].rows
    assert rows[0].name == "Complete Blood Count" and rows[0].is_header
    assert rows[1].result == "11" and rows[1].reference_range == "12-15.5"
    assert rows[-1].name == "Peripheral Smear"
    # original report untouched
    assert len(report.sections[0].rows) == 2


def test_change_demographics_recomputes_ranges_and_prefix(svc):
    report = svc.load_for_edit(make_report([], sex="Female"))
    changed = svc.change_demographics(report, sex="Male")
    hb = next(r for r in changed.sections[0].rows if r.name == "Hemoglobin")
    assert hb.reference_range == "13.5-17.5"
    assert changed.patient.name == "Mr. Priya"
    assert changed.patient.age == 30


def test_update_results_fills_derived_values(svc):
    report = svc.load_for_edit(make_report([
        TestRow(test_name="Total Protein", result="7.0"),
        TestRow(test_name="Albumin", result="4.2"),
    ], group="LIVER FUNCTION TEST"))
    rows = svc.update_results(report).sections[0].rows
    assert next(r for r in rows if r.name == "Globulin").result == "2.8"


def test_prepare_for_save(svc):
    report = Report(
        patient=Patient(),
        sections=[
            Section(name="HEMATOLOGY", report_group="HEMATOLOGY", rows=[
                NoteRow(text="Complete Blood Count", is_header=True),
                TestRow(test_name="Hemoglobin", result="13"),
                NoteRow(text="Differential Count", is_header=True),
                TestRow(test_name="Neutrophils", result=""),
            ]),
            Section(name="", rows=[TestRow(test_name="ESR", result="10")]),
            Section(name="Empty", rows=[NoteRow(text="Only a header", is_header=True)]),
        ],
    )
    saved = svc.prepare_for_save(report)
    assert [s.name for s in saved.sections] == ["HEMATOLOGY"]
    assert [r.name for r in saved.sections[0].rows] == ["Complete Blood Count", "Hemoglobin"]


def test_render_flags_and_headers(svc):
    report = make_report(
        [
            TestRow(test_name="Hemoglobin", result="16", reference_range=""),
            TestRow(test_name="MP-card", result="Negative"),
            TestRow(test_name="MF-card", result="Negative"),
            TestRow(test_name="Cross Matching Test", result=""),
            TestRow(test_name="Induration", result="12"),
        ],
        group="",
        include_notes=True,
    )
    out = svc.render(report)
    assert out["sid"] == "SID1100" and out["include_notes"] is True
    lines = out["sections"][0]["pages"][0]
    # blank cross matching is omitted, induration hides without its dose/duration
    assert [(l["kind"], l["text"]) for l in lines] == [
        ("row", "Hemoglobin"),
        ("header", "Malaria Panel"),
        ("row", "MP-card"),
        ("row", "MF-card"),
    ]
    hb = lines[0]
    # range comes from the catalog for the female patient
    assert hb["reference_range"] == "12-15.5"
    assert hb["abnormal"] is True and hb["direction"] == "high"
    assert lines[1]["synthetic"] is True


def test_render_paginates_and_attaches_notes(svc):
    rows = [TestRow(test_name="HbA1c", result="7.2"), TestRow(test_name="Urea", result="20"), TestRow(test_name="Creatinine", result="0.9")]
    report = make_report(rows, group="BIOCHEMISTRY", include_notes=True)
    out = svc.render(report, page_size=2)
    pages = out["sections"][0]["pages"]
    assert len(pages) == 2
    hba1c = pages[0][0]
    assert hba1c["direction"] == "high"
    assert hba1c["clinical_note"].startswith("HbA1c reflects")
    assert pages[1][0]["reference_range"] == "0.6-1.1"

    out = svc.render(make_report(rows, group="BIOCHEMISTRY"))
    assert out["sections"][0]["pages"][0][0]["clinical_note"] is None


def test_render_payload_skips_empty_sections(svc):
    out = svc.render_payload({"sections": [{"name": "Empty", "tests": []}]})
    assert out["sections"] == []


def test_engine_with_injected_catalog():
    cat = Catalog({"groups": {"G": [{"name": "A", "range": "1-2"}]}})
    eng = ReportEngine({}, catalog=cat)
    merged = eng.merge("G", "G", [], "Male")
    assert merged[0].reference_range == "1-2"
