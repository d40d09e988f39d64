import pytest

from labreport.engine.headers import (
    Cluster,
    HeaderPolicy,
    compose_pages,
    compose_window,
    header_before,
    page_bounds,
)
from labreport.engine.models import NoteRow, TestRow

MALARIA = Cluster.of("Malaria Panel", ["MP-card", "MF-card", "Blood Grouping", "Rh-typing", "Cross Matching Test"])
WIDAL = Cluster.of("Widal Test", ["Salmonella Typhi O"], trigger="sentinel")
MANTOUX = Cluster.of("Mantoux Test", ["Tuberculin Dose", "Reading Duration", "Induration"])
POLICY = HeaderPolicy(
    clusters=(MALARIA, WIDAL, MANTOUX),
    omit_when_blank=frozenset({"cross matching test"}),
    complete_panels=(frozenset({"tuberculin dose", "reading duration", "induration"}),),
)


def row(name, result="x"):
    return TestRow(test_name=name, result=result)


def layout(items):
    return [(i.kind, i.text) for i in items]


def test_cluster_header_once_before_first_member():
    tests = [row("MP-card"), row("MF-card"), row("Hemoglobin")]
    assert layout(compose_window(tests, 0, None, POLICY)) == [
        ("header", "Malaria Panel"),
        ("row", "MP-card"),
        ("row", "MF-card"),
        ("row", "Hemoglobin"),
    ]


def test_cluster_header_repeats_for_a_separate_run():
    tests = [row("MP-card"), row("ESR"), row("Blood Grouping")]
    headers = [i.index for i in compose_window(tests, 0, None, POLICY) if i.kind == "header"]
    assert headers == [0, 2]


def test_physical_header_row_suppresses_synthetic_one():
    tests = [NoteRow(text="MALARIA PANEL", is_header=True), row("MP-card"), row("MF-card")]
    assert layout(compose_window(tests, 0, None, POLICY)) == [
        ("row", "MALARIA PANEL"),
        ("row", "MP-card"),
        ("row", "MF-card"),
    ]


def test_sentinel_header_ignores_adjacency():
    tests = [row("Salmonella Typhi O"), row("Salmonella Typhi O"), row("Salmonella Typhi H")]
    items = compose_window(tests, 0, None, POLICY)
    assert [i.index for i in items if i.kind == "header"] == [0, 1]


def test_blank_cross_matching_is_omitted():
    tests = [row("Blood Grouping"), row("CROSS MATCHING TEST", result=" "), row("ESR")]
    assert [i.text for i in compose_window(tests, 0, None, POLICY) if i.kind == "row"] == [
        "Blood Grouping",
        "ESR",
    ]
    tests[1] = row("Cross Matching Test", result="Compatible")
    assert len(compose_window(tests, 0, None, POLICY)) == 4


def test_hidden_member_still_counts_as_previous_row():
    tests = [row("Cross Matching Test", result=""), row("Rh-typing")]
    assert layout(compose_window(tests, 0, None, POLICY)) == [("row", "Rh-typing")]


def test_hidden_non_member_starts_a_new_run():
    # incomplete mantoux triad hides the dose row between two malaria rows
    tests = [row("MP-card"), row("Tuberculin Dose", "5 TU"), row("MF-card")]
    items = compose_window(tests, 0, None, POLICY)
    assert [(i.index, i.text) for i in items if i.kind == "header"] == [
        (0, "Malaria Panel"),
        (2, "Malaria Panel"),
    ]
    assert [i.text for i in items if i.kind == "row"] == ["MP-card", "MF-card"]


def test_incomplete_triad_hides_whole_panel():
    tests = [row("Tuberculin Dose", "5 TU"), row("Reading Duration", "72"), row("Induration", ""), row("ESR")]
    assert layout(compose_window(tests, 0, None, POLICY)) == [("row", "ESR")]


def test_complete_triad_is_shown_under_its_header():
    tests = [row("Tuberculin Dose", "5 TU"), row("Reading Duration", "72"), row("Induration", "12")]
    assert layout(compose_window(tests, 0, None, POLICY))[0] == ("header", "Mantoux Test")
    assert len(compose_window(tests, 0, None, POLICY)) == 4


def test_overlapping_membership_first_rule_wins():
    other = Cluster.of("Blood Bank", ["Blood Grouping"])
    policy = HeaderPolicy(clusters=(MALARIA, other))
    assert header_before([row("Blood Grouping")], 0, policy) == "Malaria Panel"
    policy = HeaderPolicy(clusters=(other, MALARIA))
    assert header_before([row("Blood Grouping")], 0, policy) == "Blood Bank"


def test_unknown_trigger_style_is_rejected():
    with pytest.raises(ValueError):
        Cluster.of("X", ["a"], trigger="sometimes")


SECTION = [
    row("Hemoglobin"),
    row("MP-card"),
    row("MF-card"),
    row("Blood Grouping"),
    row("Salmonella Typhi O"),
    row("Salmonella Typhi O"),
    row("ESR"),
    row("Rh-typing"),
    row("Cross Matching Test", ""),
]


@pytest.mark.parametrize("split", range(len(SECTION) + 1))
def test_split_windows_match_single_pass(split):
    whole = compose_window(SECTION, 0, None, POLICY)
    parts = compose_window(SECTION, 0, split, POLICY) + compose_window(SECTION, split, None, POLICY)
    assert layout(parts) == layout(whole)
    assert [i.index for i in parts] == [i.index for i in whole]


def test_pages():
    assert page_bounds(5, None) == [(0, 5)]
    assert page_bounds(5, 2) == [(0, 2), (2, 4), (4, 5)]
    pages = compose_pages(SECTION, POLICY, page_size=2)
    assert len(pages) == 5
    flat = [(i.kind, i.text) for page in pages for i in page]
    assert flat == layout(compose_window(SECTION, 0, None, POLICY))
