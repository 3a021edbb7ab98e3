from __future__ import annotations

from sqlalchemy.orm import Session

from hrms.models.activity_log import ActivityLog, ScheduleAction
from hrms.models.schedule import ScheduleEntry


def log_schedule_activity(
    db: Session,
    *,
    entry: ScheduleEntry,
    action: ScheduleAction,
    source: str = "api",
    details: dict | None = None,
) -> None:
    """Adds an audit row to the current transaction; the caller commits."""
    record = ActivityLog(
        action=action,
        source=source,
        schedule_id=entry.id,
        faculty_id=entry.faculty_id,
        details={
            "subject_id": entry.subject_id,
            "class_section_id": entry.class_section_id,
            "day": entry.day.value if entry.day is not None else None,
            "time": entry.time,
            "duration": entry.duration,
            **(details or {}),
        },
    )
    db.add(record)
