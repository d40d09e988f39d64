# labreport/validation/validators.py
from typing import Any, Dict, List, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from labreport.engine.models import NoteRow, Patient, Report, ResultRow, Section, TestRow


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def _blank_if_none(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class _Lenient(BaseModel):
    # unknown fields are ignored, camelCase and snake_case both accepted
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResultRowPayload(_Lenient):
    id: str = ""
    test_name: str = Field("", validation_alias=_alias("test_name", "testName", "name"))
    specimen: str = ""
    result: str = ""
    units: str = ""
    reference_range: str = Field("", validation_alias=_alias("reference_range", "referenceRange"))
    method: str = ""
    notes: str = ""
    row_type: Literal["test", "note"] = Field("test", validation_alias=_alias("row_type", "rowType"))
    is_header: bool = Field(False, validation_alias=_alias("is_header", "isHeader"))

    @field_validator(
        "id", "test_name", "specimen", "result", "units", "reference_range", "method", "notes",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any):
        return _blank_if_none(v)

    @field_validator("row_type", mode="before")
    @classmethod
    def _row_type(cls, v: Any):
        return v or "test"

    @field_validator("is_header", mode="before")
    @classmethod
    def _is_header(cls, v: Any):
        return False if v is None else v

    def to_row(self) -> ResultRow:
        # note rows carry their text in the test-name column
        if self.row_type == "note":
            return NoteRow(id=self.id, text=self.test_name, is_header=self.is_header)
        return TestRow(
            id=self.id,
            test_name=self.test_name,
            specimen=self.specimen,
            result=self.result,
            units=self.units,
            reference_range=self.reference_range,
            method=self.method,
            notes=self.notes,
            is_header=self.is_header,
        )


class SectionPayload(_Lenient):
    id: str = ""
    name: str = Field("", validation_alias=_alias("name", "section_name", "sectionName"))
    report_group: str = Field("", validation_alias=_alias("report_group", "reportGroup"))
    tests: List[ResultRowPayload] = Field(default_factory=list, validation_alias=_alias("tests", "rows"))

    @field_validator("id", "name", "report_group", mode="before")
    @classmethod
    def _text(cls, v: Any):
        return _blank_if_none(v)

    @field_validator("tests", mode="before")
    @classmethod
    def _tests(cls, v: Any):
        return [] if v is None else v


class PatientPayload(_Lenient):
    sid: str = Field("", validation_alias=_alias("sid", "sid_no", "sidNo"))
    name: str = Field("", validation_alias=_alias("name", "patient_name", "patientName"))
    id: str = Field("", validation_alias=_alias("id", "patient_id", "patientId"))
    age: Union[int, float, str, None] = None
    sex: str = "Male"
    referred_by: str = Field("Self", validation_alias=_alias("referred_by", "referredBy"))
    collected_at: str = Field("", validation_alias=_alias("collected_at", "collected_date", "collectedDate"))
    received_at: str = Field("", validation_alias=_alias("received_at", "received_date", "receivedDate"))
    reported_at: str = Field("", validation_alias=_alias("reported_at", "reported_date", "reportedDate"))
    include_header: bool = Field(True, validation_alias=_alias("include_header", "includeHeader"))
    include_notes: bool = Field(False, validation_alias=_alias("include_notes", "includeNotes"))

    @field_validator(
        "sid", "name", "id", "referred_by", "collected_at", "received_at", "reported_at",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any):
        return _blank_if_none(v)

    @field_validator("sex", mode="before")
    @classmethod
    def _sex(cls, v: Any):
        return v or "Male"


class ReportPayload(_Lenient):
    patient: PatientPayload = Field(
        default_factory=PatientPayload,
        validation_alias=_alias("patient", "patient_details", "patientDetails"),
    )
    sections: List[SectionPayload] = Field(default_factory=list)

    def to_report(self) -> Report:
        p = self.patient
        return Report(
            patient=Patient(
                name=p.name,
                id=p.id,
                age=p.age,
                sex=p.sex,
                referred_by=p.referred_by,
                collected_at=p.collected_at or None,
                received_at=p.received_at or None,
                reported_at=p.reported_at or None,
            ),
            sections=[
                Section(
                    id=s.id,
                    name=s.name,
                    report_group=s.report_group,
                    rows=[t.to_row() for t in s.tests],
                )
                for s in self.sections
            ],
            sid=p.sid,
            include_header=p.include_header,
            include_notes=p.include_notes,
        )


def report_from_payload(payload: Dict[str, Any]) -> Report:
    """Build a Report from a raw dict; raises ValidationError on structural problems."""
    return ReportPayload.model_validate(payload).to_report()
