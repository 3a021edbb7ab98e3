from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import EmailStr, Field, field_validator, model_validator

from hrms.core.exceptions import TimeFormatError
from hrms.models.schedule import Weekday
from hrms.schemas.common import CamelModel
from hrms.schemas.references import (
    FacultyReference,
    NamedReference,
    faculty_reference,
    named_reference,
)
from hrms.services import time_interval

MAX_DURATION_HOURS = 5


def validate_time_token(value: str) -> str:
    try:
        return time_interval.normalize(value)
    except TimeFormatError as exc:
        raise ValueError(exc.message) from exc


class FacultyRefIn(CamelModel):
    id: int | None = Field(default=None, gt=0)
    full_name: str | None = Field(default=None, max_length=200)
    email: EmailStr | None = None

    def to_reference(self) -> FacultyReference:
        reference = faculty_reference(id=self.id, full_name=self.full_name, email=self.email)
        if reference is None:
            raise ValueError("Either faculty id, fullName, or email must be provided")
        return reference

    @model_validator(mode="after")
    def validate_identifier(self) -> "FacultyRefIn":
        self.to_reference()
        return self


class NamedRefIn(CamelModel):
    id: int | None = Field(default=None, gt=0)
    name: str | None = Field(default=None, max_length=200)

    def to_reference(self) -> NamedReference:
        reference = named_reference(id=self.id, name=self.name)
        if reference is None:
            raise ValueError("Either id or name must be provided")
        return reference

    @model_validator(mode="after")
    def validate_identifier(self) -> "NamedRefIn":
        self.to_reference()
        return self


class ScheduleRequest(CamelModel):
    faculty_ref: FacultyRefIn
    subject_ref: NamedRefIn
    section_ref: NamedRefIn
    day: Weekday | None = None
    days: list[Weekday] | None = Field(default=None, max_length=7)
    time: str
    duration: float = Field(gt=0, le=MAX_DURATION_HOURS)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_token(value)

    @model_validator(mode="after")
    def validate_days(self) -> "ScheduleRequest":
        if self.day is None and not self.days:
            raise ValueError("Either day or days must be provided")
        if self.day is not None and self.days:
            raise ValueError("Provide either day or days, not both")
        if self.days and len(set(self.days)) != len(self.days):
            raise ValueError("days must not repeat")
        return self

    def target_days(self) -> list[Weekday]:
        return [self.day] if self.day is not None else list(self.days or [])


class ScheduleUpdate(CamelModel):
    faculty_ref: FacultyRefIn | None = None
    subject_ref: NamedRefIn
    section_ref: NamedRefIn
    day: Weekday
    time: str
    duration: float = Field(gt=0, le=MAX_DURATION_HOURS)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_token(value)


class ScheduleEntryOut(CamelModel):
    id: int
    faculty_id: int
    subject_id: int
    class_section_id: int
    day: Weekday
    time: str
    duration: float
    subject_name: str | None = None
    section_name: str | None = None
    faculty_name: str | None = None

    @classmethod
    def from_entry(cls, entry) -> "ScheduleEntryOut":
        return cls(
            id=entry.id,
            faculty_id=entry.faculty_id,
            subject_id=entry.subject_id,
            class_section_id=entry.class_section_id,
            day=entry.day,
            time=entry.time,
            duration=entry.duration,
            subject_name=entry.subject.name if entry.subject is not None else None,
            section_name=entry.class_section.name if entry.class_section is not None else None,
            faculty_name=entry.faculty.full_name if entry.faculty is not None else None,
        )


class CreateErrorOut(CamelModel):
    index: int
    day: Weekday | None = None
    message: str


class CreateResultOut(CamelModel):
    status: str
    created: list[ScheduleEntryOut]
    errors: list[CreateErrorOut]


class ConflictCheckRequest(CamelModel):
    faculty_id: int = Field(gt=0)
    subject_id: int | None = Field(default=None, gt=0)
    class_section_id: int = Field(gt=0)
    day: Weekday
    time: str
    schedule_id: int | None = Field(default=None, gt=0)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_token(value)


class ConflictingScheduleOut(CamelModel):
    id: int
    subject_name: str
    section_name: str
    teacher_name: str
    day: Weekday
    time: str


class ConflictOut(CamelModel):
    type: str
    message: str
    conflicting_schedule: ConflictingScheduleOut


class ConflictCheckResponse(CamelModel):
    has_conflicts: bool
    conflicts: list[ConflictOut]


class AssignTeacherRequest(CamelModel):
    sis_schedule_id: int | None = Field(default=None, gt=0)
    faculty_id: int = Field(gt=0)
    subject_id: int = Field(gt=0)
    class_section_id: int = Field(gt=0)
    day: Weekday
    time: str
    duration: float = Field(default=1, gt=0, le=MAX_DURATION_HOURS)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_token(value)


class SyncOut(CamelModel):
    success: bool
    synced: bool
    status: str
    message: str | None = None
    error: str | None = None


class AssignTeacherResponse(CamelModel):
    success: bool
    message: str
    schedule: ScheduleEntryOut
    sync: SyncOut | None = None


class RestoreTeacherRequest(CamelModel):
    hrms_schedule_id: int = Field(gt=0)
    original_faculty_id: int = Field(gt=0)
    sis_schedule_id: int | None = Field(default=None, gt=0)


class LeaveOut(CamelModel):
    leave_id: int
    leave_type: str
    start_date: date
    end_date: date
    reason: str | None = None

    @classmethod
    def from_leave(cls, leave) -> "LeaveOut":
        return cls(
            leave_id=leave.id,
            leave_type=leave.leave_type.value,
            start_date=leave.start_date,
            end_date=leave.end_date,
            reason=leave.reason,
        )


class LeaveStatusOut(CamelModel):
    is_on_leave: bool
    leave: LeaveOut | None = None


class LeaveStatusResponse(CamelModel):
    success: bool = True
    leave_status: dict[int, LeaveStatusOut]


class AvailableTeacherOut(CamelModel):
    faculty_id: int
    employee_id: str
    name: str
    email: str
    position: str | None = None
    current_load: int


class BulkImportRequest(CamelModel):
    rows: list[dict[str, Any]] = Field(max_length=5000)


class RowErrorOut(CamelModel):
    row: int
    message: str


class ImportResultOut(CamelModel):
    success: int
    failed: int
    errors: list[RowErrorOut]
