from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from hrms.db.base import Base, enum_values
from hrms.models.user import User


class EmploymentType(str, Enum):
    full_time = "FullTime"
    part_time = "PartTime"
    probationary = "Probationary"


class EmploymentStatus(str, Enum):
    regular = "Regular"
    probationary = "Probationary"
    resigned = "Resigned"
    retired = "Retired"


INACTIVE_EMPLOYMENT_STATUSES = {EmploymentStatus.resigned, EmploymentStatus.retired}


class Faculty(Base):
    __tablename__ = "faculty"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    position: Mapped[str | None] = mapped_column(String(200), nullable=True)
    employment_type: Mapped[EmploymentType] = mapped_column(
        SAEnum(EmploymentType, name="employment_type", values_callable=enum_values),
        nullable=False,
        default=EmploymentType.full_time,
    )
    employment_status: Mapped[EmploymentStatus] = mapped_column(
        SAEnum(EmploymentStatus, name="employment_status", values_callable=enum_values),
        nullable=False,
        default=EmploymentStatus.regular,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    user: Mapped[User] = relationship(lazy="joined")

    @property
    def full_name(self) -> str:
        return self.user.full_name if self.user is not None else ""

    @property
    def email(self) -> str:
        return self.user.email if self.user is not None else ""
