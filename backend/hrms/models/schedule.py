from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from hrms.db.base import Base, enum_values
from hrms.models.academics import ClassSection, Subject
from hrms.models.faculty import Faculty


class Weekday(str, Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"


DAY_VALUES = [item.value for item in Weekday]


class ScheduleEntry(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("subject_id", "class_section_id", "day", "time", name="uq_schedules_slot"),
        UniqueConstraint("faculty_id", "day", "start_minute", name="uq_schedules_faculty_start"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    faculty_id: Mapped[int] = mapped_column(ForeignKey("faculty.id"), index=True, nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    class_section_id: Mapped[int] = mapped_column(ForeignKey("class_sections.id"), index=True, nullable=False)
    day: Mapped[Weekday] = mapped_column(
        SAEnum(Weekday, name="weekday", values_callable=enum_values),
        nullable=False,
    )
    time: Mapped[str] = mapped_column(String(20), nullable=False)
    # Derived from `time`; rows written by external tooling are backfilled at startup.
    start_minute: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_minute: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    faculty: Mapped[Faculty] = relationship(lazy="joined")
    subject: Mapped[Subject] = relationship(lazy="joined")
    class_section: Mapped[ClassSection] = relationship(lazy="joined")
