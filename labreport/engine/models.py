# ===============================
# File: labreport/engine/models.py
# ===============================
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union

TEST = "test"
GROUP_HEADER = "groupHeader"


@dataclass(frozen=True)
class TestDefinition:
    __test__ = False

    name: str
    specimen: str = ""
    unit: str = ""
    reference_range_expr: str = ""
    method: str = ""
    clinical_note: Optional[str] = None
    kind: Literal["test", "groupHeader"] = TEST

    @property
    def is_header(self) -> bool:
        return self.kind == GROUP_HEADER


@dataclass
class TestRow:
    __test__ = False

    id: str = ""
    test_name: str = ""
    specimen: str = ""
    result: str = ""
    units: str = ""
    reference_range: str = ""  # "" -> use template
    method: str = ""
    notes: str = ""
    is_header: bool = False
    row_type: Literal["test"] = TEST

    @property
    def name(self) -> str:
        return self.test_name


@dataclass
class NoteRow:
    id: str = ""
    text: str = ""
    is_header: bool = False
    row_type: Literal["note"] = "note"

    @property
    def name(self) -> str:
        return self.text


ResultRow = Union[TestRow, NoteRow]


@dataclass
class Section:
    name: str
    rows: List[ResultRow] = field(default_factory=list)
    report_group: str = ""  # "" -> free-form
    id: str = ""


@dataclass
class Patient:
    name: str = ""
    id: str = ""
    age: Union[float, str, None] = None
    sex: str = "Male"
    referred_by: str = "Self"
    collected_at: Optional[str] = None
    received_at: Optional[str] = None
    reported_at: Optional[str] = None


@dataclass
class Report:
    patient: Patient
    sections: List[Section] = field(default_factory=list)
    sid: str = ""
    include_header: bool = True
    include_notes: bool = False


@dataclass(frozen=True)
class Verdict:
    abnormal: bool = False
    direction: Literal["high", "low", "normal"] = "normal"


NORMAL = Verdict()
