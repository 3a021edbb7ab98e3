from __future__ import annotations

import logging

from sqlalchemy import inspect, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from hrms.core.exceptions import TimeFormatError
from hrms.db.base import Base
from hrms.db.session import engine as default_engine
import hrms.models  # noqa: F401
from hrms.models.schedule import ScheduleEntry
from hrms.services import time_interval

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "first_name", "last_name", "email", "status"},
    "faculty": {"id", "user_id", "employee_id", "employment_type", "employment_status", "is_deleted"},
    "subjects": {"id", "name"},
    "class_sections": {"id", "name"},
    "schedules": {
        "id",
        "faculty_id",
        "subject_id",
        "class_section_id",
        "day",
        "time",
        "start_minute",
        "end_minute",
        "duration",
    },
}


def missing_schema(bind: Engine) -> tuple[list[str], dict[str, list[str]]]:
    with bind.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
        missing_columns: dict[str, list[str]] = {}
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(required - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def _assert_required_columns(bind: Engine) -> None:
    missing_tables, missing_columns = missing_schema(bind)
    if missing_tables:
        raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
    if missing_columns:
        flat = [f"{table}.{column}" for table, columns in missing_columns.items() for column in columns]
        raise RuntimeError(f"Missing required columns: {', '.join(flat)}")


def _slot_text_taken(db: Session, entry: ScheduleEntry, time: str) -> bool:
    stmt = select(ScheduleEntry.id).where(
        ScheduleEntry.subject_id == entry.subject_id,
        ScheduleEntry.class_section_id == entry.class_section_id,
        ScheduleEntry.day == entry.day,
        ScheduleEntry.time == time,
        ScheduleEntry.id != entry.id,
    )
    return db.execute(stmt).first() is not None


def backfill_schedule_minutes(bind: Engine) -> int:
    """Fills start_minute/end_minute for rows written with only the time token.

    The token itself is rewritten to its canonical form ("09:00-10:00" becomes
    "9:00-10:00") unless another row of the same slot already holds that text.
    """
    updated = 0
    with Session(bind) as db:
        stmt = select(ScheduleEntry).where(
            or_(ScheduleEntry.start_minute.is_(None), ScheduleEntry.end_minute.is_(None))
        )
        for entry in db.execute(stmt).unique().scalars():
            try:
                interval = time_interval.parse(entry.time)
            except TimeFormatError:
                logger.warning("Schedule %s has unparseable time %r; leaving it unnormalized", entry.id, entry.time)
                continue
            entry.start_minute = interval.start_minutes
            entry.end_minute = interval.end_minutes
            canonical = time_interval.format_range(interval)
            if entry.time != canonical and not _slot_text_taken(db, entry, canonical):
                entry.time = canonical
            updated += 1
        db.commit()
    if updated:
        logger.info("Backfilled normalized minutes for %d schedule row(s)", updated)
    return updated


def ensure_runtime_schema_compatibility(bind: Engine | None = None) -> None:
    bind = bind or default_engine
    try:
        Base.metadata.create_all(bind=bind)
        _assert_required_columns(bind)
        backfill_schedule_minutes(bind)
    except Exception as exc:
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
