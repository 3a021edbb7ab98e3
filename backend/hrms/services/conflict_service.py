from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.core.exceptions import ConflictError, StorageError, TimeFormatError
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.services import time_interval
from hrms.services.time_interval import TimeInterval

logger = logging.getLogger(__name__)

ConflictType = Literal["teacher", "section"]


@dataclass(frozen=True)
class ConflictResult:
    conflict_type: ConflictType
    entry_id: int | None
    faculty_id: int
    subject_name: str
    section_name: str
    teacher_name: str
    day: Weekday
    time: str
    message: str

    def to_error(self) -> ConflictError:
        return ConflictError(
            self.message,
            conflict_type=self.conflict_type,
            entry_id=self.entry_id,
            subject_name=self.subject_name,
            day=self.day.value,
            time=self.time,
        )


def entry_interval(entry: ScheduleEntry) -> TimeInterval:
    if entry.start_minute is not None and entry.end_minute is not None:
        return TimeInterval(entry.start_minute, entry.end_minute)
    try:
        return time_interval.parse(entry.time)
    except TimeFormatError as exc:
        logger.error("Schedule %s has malformed stored time %r", entry.id, entry.time)
        raise StorageError() from exc


def _day_value(day) -> str:
    return day.value if isinstance(day, Weekday) else str(day)


class ConflictChecker:
    """Detects faculty double-booking and section double-staffing for a proposed slot.

    ``pending`` carries entries written earlier in the same call that a caller
    wants considered even if they are not yet visible through the session.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _candidates(
        self,
        *,
        day: Weekday,
        faculty_id: int | None = None,
        section_id: int | None = None,
        exclude_entry_id: int | None = None,
        pending: Iterable[ScheduleEntry] = (),
    ) -> list[ScheduleEntry]:
        stmt = select(ScheduleEntry).where(ScheduleEntry.day == day)
        if faculty_id is not None:
            stmt = stmt.where(ScheduleEntry.faculty_id == faculty_id)
        if section_id is not None:
            stmt = stmt.where(ScheduleEntry.class_section_id == section_id)
        if exclude_entry_id is not None:
            stmt = stmt.where(ScheduleEntry.id != exclude_entry_id)
        entries = list(self.db.execute(stmt.order_by(ScheduleEntry.id)).unique().scalars())

        seen = {entry.id for entry in entries}
        for entry in pending:
            if entry.day != day or (entry.id is not None and entry.id in seen):
                continue
            if exclude_entry_id is not None and entry.id == exclude_entry_id:
                continue
            if faculty_id is not None and entry.faculty_id != faculty_id:
                continue
            if section_id is not None and entry.class_section_id != section_id:
                continue
            entries.append(entry)
        return entries

    def _faculty_conflicts(self, faculty_id, day, proposed, time, exclude_entry_id, pending):
        for entry in self._candidates(
            day=day, faculty_id=faculty_id, exclude_entry_id=exclude_entry_id, pending=pending
        ):
            if not time_interval.overlaps(entry_interval(entry), proposed):
                continue
            subject_name = entry.subject.name if entry.subject is not None else f"subject {entry.subject_id}"
            yield ConflictResult(
                conflict_type="teacher",
                entry_id=entry.id,
                faculty_id=entry.faculty_id,
                subject_name=subject_name,
                section_name=entry.class_section.name if entry.class_section is not None else "",
                teacher_name=entry.faculty.full_name if entry.faculty is not None else "",
                day=entry.day,
                time=entry.time,
                message=(
                    f"Teacher already has {subject_name} scheduled at {_day_value(day)} {entry.time}. "
                    f"Cannot assign another subject at overlapping time {time} on the same day."
                ),
            )

    def _section_conflicts(self, section_id, day, proposed, time, faculty_id, exclude_entry_id, pending):
        for entry in self._candidates(
            day=day, section_id=section_id, exclude_entry_id=exclude_entry_id, pending=pending
        ):
            # The same teacher re-teaching the section is not a conflict at this layer.
            if entry.faculty_id == faculty_id:
                continue
            if not time_interval.overlaps(entry_interval(entry), proposed):
                continue
            subject_name = entry.subject.name if entry.subject is not None else f"subject {entry.subject_id}"
            section_name = entry.class_section.name if entry.class_section is not None else str(section_id)
            teacher_name = entry.faculty.full_name if entry.faculty is not None else f"faculty {entry.faculty_id}"
            yield ConflictResult(
                conflict_type="section",
                entry_id=entry.id,
                faculty_id=entry.faculty_id,
                subject_name=subject_name,
                section_name=section_name,
                teacher_name=teacher_name,
                day=entry.day,
                time=entry.time,
                message=(
                    f"Section {section_name} already has {teacher_name} teaching {subject_name} "
                    f"at {_day_value(day)} {entry.time}. Cannot assign another teacher at overlapping time {time}."
                ),
            )

    def check_faculty_conflict(
        self,
        faculty_id: int,
        day: Weekday,
        time: str,
        exclude_entry_id: int | None = None,
        pending: Iterable[ScheduleEntry] = (),
    ) -> ConflictResult | None:
        proposed = time_interval.parse(time)
        return next(
            self._faculty_conflicts(faculty_id, day, proposed, time, exclude_entry_id, list(pending)),
            None,
        )

    def check_section_conflict(
        self,
        section_id: int,
        day: Weekday,
        time: str,
        faculty_id: int,
        exclude_entry_id: int | None = None,
        pending: Iterable[ScheduleEntry] = (),
    ) -> ConflictResult | None:
        proposed = time_interval.parse(time)
        return next(
            self._section_conflicts(section_id, day, proposed, time, faculty_id, exclude_entry_id, list(pending)),
            None,
        )

    def ensure_no_conflict(
        self,
        *,
        faculty_id: int,
        section_id: int,
        day: Weekday,
        time: str,
        exclude_entry_id: int | None = None,
        pending: Iterable[ScheduleEntry] = (),
    ) -> None:
        """Faculty check first, then section; the first failure raises ConflictError."""
        pending = list(pending)
        conflict = self.check_faculty_conflict(faculty_id, day, time, exclude_entry_id, pending)
        if conflict is None:
            conflict = self.check_section_conflict(section_id, day, time, faculty_id, exclude_entry_id, pending)
        if conflict is not None:
            raise conflict.to_error()

    def find_conflicts(
        self,
        *,
        faculty_id: int,
        section_id: int,
        day: Weekday,
        time: str,
        exclude_entry_id: int | None = None,
    ) -> list[ConflictResult]:
        proposed = time_interval.parse(time)
        conflicts = list(self._faculty_conflicts(faculty_id, day, proposed, time, exclude_entry_id, []))
        conflicts.extend(self._section_conflicts(section_id, day, proposed, time, faculty_id, exclude_entry_id, []))
        return conflicts
