from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from hrms.db.base import Base, enum_values


class ScheduleAction(str, Enum):
    created = "schedule.created"
    updated = "schedule.updated"
    reassigned = "schedule.reassigned"
    restored = "schedule.restored"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[ScheduleAction] = mapped_column(
        SAEnum(ScheduleAction, name="schedule_action", values_callable=enum_values),
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="api")
    schedule_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    faculty_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
