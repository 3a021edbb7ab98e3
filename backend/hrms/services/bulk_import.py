from __future__ import annotations

import csv
from dataclasses import dataclass, field
import io
import logging
from typing import Any, Iterable, Mapping

from pydantic import EmailStr, Field, ValidationError as PydanticValidationError, field_validator, model_validator
from sqlalchemy.orm import Session

from hrms.core.exceptions import AppError
from hrms.models.schedule import Weekday
from hrms.schemas.common import CamelModel
from hrms.schemas.references import faculty_reference, named_reference
from hrms.schemas.schedule import FacultyRefIn, NamedRefIn, ScheduleRequest, validate_time_token
from hrms.services.assignment import ScheduleAssignmentService

logger = logging.getLogger(__name__)

# Spreadsheet row 1 is the header.
FIRST_DATA_ROW = 2

CSV_HEADER_ALIASES = {
    "facultyid": "facultyId",
    "facultyname": "facultyName",
    "facultyemail": "facultyEmail",
    "subjectid": "subjectId",
    "subjectname": "subjectName",
    "classsectionid": "sectionId",
    "sectionid": "sectionId",
    "sectionname": "sectionName",
    "section": "sectionName",
    "day": "day",
    "time": "time",
    "duration": "duration",
}


class ImportRow(CamelModel):
    faculty_id: int | None = None
    faculty_name: str | None = None
    faculty_email: EmailStr | None = None
    subject_id: int | None = None
    subject_name: str | None = None
    section_id: int | None = None
    section_name: str | None = None
    day: Weekday
    time: str
    duration: float = Field(ge=0.5, le=5)

    @field_validator("faculty_id", "subject_id", "section_id", "faculty_name", "faculty_email",
                     "subject_name", "section_name", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("day", mode="before")
    @classmethod
    def normalize_day(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_token(value)

    @model_validator(mode="after")
    def validate_identifiers(self) -> "ImportRow":
        if faculty_reference(id=self.faculty_id, full_name=self.faculty_name, email=self.faculty_email) is None:
            raise ValueError("One of facultyId, facultyName or facultyEmail is required")
        if named_reference(id=self.subject_id, name=self.subject_name) is None:
            raise ValueError("One of subjectId or subjectName is required")
        if named_reference(id=self.section_id, name=self.section_name) is None:
            raise ValueError("One of sectionId or sectionName is required")
        return self

    def to_request(self) -> ScheduleRequest:
        return ScheduleRequest(
            faculty_ref=FacultyRefIn(id=self.faculty_id, full_name=self.faculty_name, email=self.faculty_email),
            subject_ref=NamedRefIn(id=self.subject_id, name=self.subject_name),
            section_ref=NamedRefIn(id=self.section_id, name=self.section_name),
            day=self.day,
            time=self.time,
            duration=self.duration,
        )


@dataclass
class RowError:
    row: int
    message: str


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: list[RowError] = field(default_factory=list)

    def fail(self, row: int, message: str) -> None:
        self.failed += 1
        self.errors.append(RowError(row=row, message=message))


def describe_validation_error(exc: PydanticValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid row"


def parse_csv(text: str) -> list[dict[str, str]]:
    """Reads an uploaded CSV into raw row mappings keyed by import field name.

    Headers are matched case-insensitively; unknown columns are ignored and
    fully blank lines are skipped. Values are validated later, per row.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header = next(reader, None)
    if header is None:
        return []
    columns = [CSV_HEADER_ALIASES.get(name.strip().lower()) for name in header]

    rows: list[dict[str, str]] = []
    for values in reader:
        if not any(value.strip() for value in values):
            continue
        row: dict[str, str] = {}
        for column, value in zip(columns, values):
            if column is not None and value.strip() and column not in row:
                row[column] = value.strip()
        rows.append(row)
    return rows


class BulkImportProcessor:
    """Imports schedule rows one at a time; a failing row never stops the batch."""

    def __init__(self, db: Session, *, service: ScheduleAssignmentService | None = None) -> None:
        self.db = db
        self.service = service or ScheduleAssignmentService(db, source="bulk_import")

    def import_batch(self, rows: Iterable[Mapping[str, Any] | ImportRow]) -> ImportResult:
        result = ImportResult()
        for index, raw in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                row = raw if isinstance(raw, ImportRow) else ImportRow.model_validate(raw)
                outcome = self.service.create(row.to_request())
            except PydanticValidationError as exc:
                result.fail(row_number, describe_validation_error(exc))
                continue
            except AppError as exc:
                result.fail(row_number, exc.message)
                continue

            if outcome.errors:
                result.fail(row_number, outcome.errors[0].message)
            else:
                result.success += len(outcome.created)

        logger.info("Bulk import finished: %d succeeded, %d failed", result.success, result.failed)
        return result

    def import_csv(self, text: str) -> ImportResult:
        return self.import_batch(parse_csv(text))
