"""Guarded writes for schedule rows.

Every insert or update of ``schedules`` goes through this module. A write takes
the (faculty, day) and (section, day) guards, re-validates overlap against
committed rows, writes the audit row and commits before releasing the guards.
The unique constraints on ``schedules`` back this up across processes.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from threading import Lock

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrms.core.exceptions import ConflictError, SlotTakenError, StorageError
from hrms.models.academics import ClassSection
from hrms.models.activity_log import ScheduleAction
from hrms.models.faculty import Faculty
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.services import time_interval
from hrms.services.audit import log_schedule_activity
from hrms.services.conflict_service import ConflictChecker

logger = logging.getLogger(__name__)

_registry_lock = Lock()
_slot_locks: dict[tuple, Lock] = {}


def _lock_for(key: tuple) -> Lock:
    with _registry_lock:
        lock = _slot_locks.get(key)
        if lock is None:
            lock = _slot_locks[key] = Lock()
        return lock


def clear_slot_locks() -> None:
    with _registry_lock:
        _slot_locks.clear()


@contextmanager
def slot_guard(db: Session, *, faculty_ids: set[int], section_ids: set[int], days: set[Weekday]):
    keys = sorted(
        [("faculty", faculty_id, day.value) for faculty_id in faculty_ids for day in days]
        + [("section", section_id, day.value) for section_id in section_ids for day in days]
    )
    locks = [_lock_for(key) for key in keys]
    acquired: list[Lock] = []
    try:
        for lock in locks:
            lock.acquire()
            acquired.append(lock)
        if db.get_bind().dialect.name == "postgresql":
            # Row locks serialize writers running in other processes.
            db.execute(select(Faculty.id).where(Faculty.id.in_(sorted(faculty_ids))).with_for_update())
            db.execute(select(ClassSection.id).where(ClassSection.id.in_(sorted(section_ids))).with_for_update())
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()


def _revalidate(db: Session, *, faculty_id, section_id, day, time, exclude_entry_id=None) -> None:
    try:
        ConflictChecker(db).ensure_no_conflict(
            faculty_id=faculty_id,
            section_id=section_id,
            day=day,
            time=time,
            exclude_entry_id=exclude_entry_id,
        )
    except ConflictError as exc:
        raise SlotTakenError(
            exc.message,
            conflict_type=exc.conflict_type,
            entry_id=exc.entry_id,
            subject_name=exc.subject_name,
            day=exc.day,
            time=exc.time,
        ) from exc


def _flush(db: Session, *, context: str) -> None:
    _finish(db, db.flush, context=context)


def _commit(db: Session, *, context: str) -> None:
    _finish(db, db.commit, context=context)


def _finish(db: Session, step, *, context: str) -> None:
    try:
        step()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Schedule write rejected by storage constraint (%s): %s", context, exc.orig)
        raise SlotTakenError(
            "This time slot was just taken by another assignment. Refresh and try again.",
            conflict_type="storage",
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Schedule write failed (%s)", context)
        raise StorageError() from exc


def insert_entry(
    db: Session,
    *,
    faculty_id: int,
    subject_id: int,
    section_id: int,
    day: Weekday,
    time: str,
    duration: float,
    source: str = "api",
) -> ScheduleEntry:
    interval = time_interval.parse(time)
    with slot_guard(db, faculty_ids={faculty_id}, section_ids={section_id}, days={day}):
        _revalidate(db, faculty_id=faculty_id, section_id=section_id, day=day, time=time)
        entry = ScheduleEntry(
            faculty_id=faculty_id,
            subject_id=subject_id,
            class_section_id=section_id,
            day=day,
            time=time_interval.format_range(interval),
            start_minute=interval.start_minutes,
            end_minute=interval.end_minutes,
            duration=duration,
        )
        context = f"insert faculty={faculty_id} day={day.value} time={time}"
        db.add(entry)
        _flush(db, context=context)
        log_schedule_activity(db, entry=entry, action=ScheduleAction.created, source=source)
        _commit(db, context=context)
    db.refresh(entry)
    logger.info("Created schedule %s: faculty %s, %s %s", entry.id, faculty_id, day.value, entry.time)
    return entry


def update_entry(
    db: Session,
    entry: ScheduleEntry,
    *,
    faculty_id: int,
    subject_id: int,
    section_id: int,
    day: Weekday,
    time: str,
    duration: float,
    action: ScheduleAction = ScheduleAction.updated,
    source: str = "api",
) -> ScheduleEntry:
    interval = time_interval.parse(time)
    previous_faculty_id = entry.faculty_id
    with slot_guard(
        db,
        faculty_ids={faculty_id, previous_faculty_id},
        section_ids={section_id, entry.class_section_id},
        days={day, entry.day},
    ):
        _revalidate(
            db,
            faculty_id=faculty_id,
            section_id=section_id,
            day=day,
            time=time,
            exclude_entry_id=entry.id,
        )
        entry.faculty_id = faculty_id
        entry.subject_id = subject_id
        entry.class_section_id = section_id
        entry.day = day
        entry.time = time_interval.format_range(interval)
        entry.start_minute = interval.start_minutes
        entry.end_minute = interval.end_minutes
        entry.duration = duration
        log_schedule_activity(
            db,
            entry=entry,
            action=action,
            source=source,
            details={"previous_faculty_id": previous_faculty_id},
        )
        _commit(db, context=f"update schedule={entry.id}")
    db.refresh(entry)
    logger.info("%s schedule %s: faculty %s -> %s", action.value, entry.id, previous_faculty_id, faculty_id)
    return entry
