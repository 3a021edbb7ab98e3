from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.core.exceptions import NotFoundError
from hrms.models.faculty import INACTIVE_EMPLOYMENT_STATUSES, EmploymentType, Faculty
from hrms.models.leave_request import LeaveRequest, LeaveStatus
from hrms.models.schedule import DAY_VALUES, ScheduleEntry, Weekday
from hrms.models.user import UserStatus
from hrms.services import time_interval
from hrms.services.conflict_service import entry_interval


@dataclass(frozen=True)
class WorkloadLimits:
    max_hours_per_week: float
    max_sections: int


WORKLOAD_LIMITS: dict[EmploymentType, WorkloadLimits] = {
    EmploymentType.full_time: WorkloadLimits(max_hours_per_week=40, max_sections=10),
    EmploymentType.probationary: WorkloadLimits(max_hours_per_week=35, max_sections=8),
    EmploymentType.part_time: WorkloadLimits(max_hours_per_week=20, max_sections=5),
}


@dataclass(frozen=True)
class WorkloadSnapshot:
    sections: int
    hours_per_week: float


@dataclass
class WorkloadDecision:
    allowed: bool
    reasons: list[str]
    current: WorkloadSnapshot
    proposed: WorkloadSnapshot
    limits: WorkloadLimits


@dataclass
class Availability:
    available: bool
    reason: str | None = None
    leave: LeaveRequest | None = None


@dataclass
class AssignmentValidation:
    can_assign: bool
    reasons: list[str]
    decision: WorkloadDecision
    availability: Availability
    conflicts: list[ScheduleEntry] = field(default_factory=list)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def limits(employment_type: EmploymentType | str) -> WorkloadLimits:
    return WORKLOAD_LIMITS[EmploymentType(employment_type)]


def load_status(percentage: int) -> str:
    if percentage >= 100:
        return "Full Load"
    if percentage >= 80:
        return "Near Capacity"
    if percentage >= 50:
        return "Moderate Load"
    return "Light Load"


class WorkloadCalculator:
    """Teaching-load capacity per employment type.

    Advisory only: ScheduleAssignmentService does not call it on every create.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _faculty(self, faculty_id: int) -> Faculty:
        faculty = self.db.get(Faculty, faculty_id)
        if faculty is None or faculty.is_deleted:
            raise NotFoundError("Faculty", faculty_id, f"Faculty ID {faculty_id} not found")
        return faculty

    def faculty_by_employee_id(self, employee_id: str) -> Faculty:
        stmt = select(Faculty).where(Faculty.employee_id == employee_id, Faculty.is_deleted.is_(False))
        faculty = self.db.execute(stmt).unique().scalar_one_or_none()
        if faculty is None:
            raise NotFoundError("Faculty", employee_id, "Faculty not found")
        return faculty

    def entries(self, faculty_id: int) -> list[ScheduleEntry]:
        stmt = (
            select(ScheduleEntry)
            .where(ScheduleEntry.faculty_id == faculty_id)
            .order_by(ScheduleEntry.day, ScheduleEntry.start_minute)
        )
        return list(self.db.execute(stmt).unique().scalars())

    def current_load(self, faculty_id: int) -> WorkloadSnapshot:
        entries = self.entries(faculty_id)
        return WorkloadSnapshot(
            sections=len(entries),
            hours_per_week=sum(entry.duration or 0 for entry in entries),
        )

    def can_accept(self, faculty_id: int, additional_hours: float = 0, additional_sections: int = 0) -> WorkloadDecision:
        faculty = self._faculty(faculty_id)
        ceiling = limits(faculty.employment_type)
        current = self.current_load(faculty_id)
        proposed = WorkloadSnapshot(
            sections=current.sections + additional_sections,
            hours_per_week=current.hours_per_week + additional_hours,
        )
        reasons: list[str] = []
        if proposed.hours_per_week > ceiling.max_hours_per_week:
            reasons.append(
                f"Exceeds maximum hours ({_fmt(proposed.hours_per_week)}/{_fmt(ceiling.max_hours_per_week)} hours)"
            )
        if proposed.sections > ceiling.max_sections:
            reasons.append(f"Exceeds maximum sections ({proposed.sections}/{ceiling.max_sections} sections)")
        return WorkloadDecision(
            allowed=not reasons,
            reasons=reasons,
            current=current,
            proposed=proposed,
            limits=ceiling,
        )

    def availability(self, faculty_id: int, on: date | None = None) -> Availability:
        faculty = self._faculty(faculty_id)
        on = on or date.today()
        stmt = (
            select(LeaveRequest)
            .where(
                LeaveRequest.faculty_id == faculty_id,
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.start_date <= on,
                LeaveRequest.end_date >= on,
            )
            .order_by(LeaveRequest.start_date.desc())
        )
        leave = self.db.execute(stmt).scalars().first()
        if leave is not None:
            return Availability(False, f"On {leave.leave_type.value} Leave", leave)
        if faculty.employment_status in INACTIVE_EMPLOYMENT_STATUSES:
            return Availability(False, f"Faculty status: {faculty.employment_status.value}")
        if faculty.user is not None and faculty.user.status != UserStatus.active:
            return Availability(False, f"Faculty status: {faculty.user.status.value}")
        return Availability(True)

    def leave_status(self, faculty_ids: list[int], on: date | None = None) -> dict[int, LeaveRequest | None]:
        """Approved leave covering ``on`` for each known faculty id; unknown ids are left out."""
        on = on or date.today()
        known = self.db.execute(
            select(Faculty.id).where(Faculty.id.in_(faculty_ids), Faculty.is_deleted.is_(False))
        ).scalars()
        status: dict[int, LeaveRequest | None] = {faculty_id: None for faculty_id in known}
        if not status:
            return status
        stmt = (
            select(LeaveRequest)
            .where(
                LeaveRequest.faculty_id.in_(list(status)),
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.start_date <= on,
                LeaveRequest.end_date >= on,
            )
            .order_by(LeaveRequest.start_date.desc(), LeaveRequest.id)
        )
        for leave in self.db.execute(stmt).scalars():
            if status[leave.faculty_id] is None:
                status[leave.faculty_id] = leave
        return status

    def leaves_between(
        self,
        faculty_id: int,
        start: date | None = None,
        end: date | None = None,
        *,
        limit: int = 10,
    ) -> list[LeaveRequest]:
        """Pending or approved leave, newest first; with both bounds, only leave touching [start, end]."""
        stmt = select(LeaveRequest).where(
            LeaveRequest.faculty_id == faculty_id,
            LeaveRequest.status.in_([LeaveStatus.pending, LeaveStatus.approved]),
        )
        if start is not None and end is not None:
            stmt = stmt.where(LeaveRequest.start_date <= end, LeaveRequest.end_date >= start)
        stmt = stmt.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def validate_assignment(
        self,
        faculty_id: int,
        *,
        additional_hours: float = 0,
        additional_sections: int = 0,
        day: Weekday | None = None,
        time: str | None = None,
        duration: float | None = None,
        on: date | None = None,
    ) -> AssignmentValidation:
        """Explicit validate-before-assign: availability, capacity and faculty overlap."""
        availability = self.availability(faculty_id, on)
        decision = self.can_accept(faculty_id, additional_hours + (duration or 0), additional_sections)
        reasons: list[str] = []
        if not availability.available:
            reasons.append(availability.reason or "Faculty is unavailable")
        reasons.extend(decision.reasons)

        conflicts: list[ScheduleEntry] = []
        if day is not None and time is not None:
            proposed = time_interval.parse(time)
            conflicts = [
                entry
                for entry in self.entries(faculty_id)
                if entry.day == day and time_interval.overlaps(entry_interval(entry), proposed)
            ]
            if conflicts:
                reasons.append("Schedule conflict detected")

        return AssignmentValidation(
            can_assign=not reasons,
            reasons=reasons,
            decision=decision,
            availability=availability,
            conflicts=conflicts,
        )

    def available_faculty(self, day: Weekday, time: str, on: date | None = None) -> list[tuple[Faculty, int]]:
        """Faculty free at ``day``/``time`` and currently available, with their section count."""
        proposed = time_interval.parse(time)
        day_entries = self.db.execute(select(ScheduleEntry).where(ScheduleEntry.day == day)).unique().scalars()
        busy = {entry.faculty_id for entry in day_entries if time_interval.overlaps(entry_interval(entry), proposed)}

        candidates = self.db.execute(
            select(Faculty).where(Faculty.is_deleted.is_(False)).order_by(Faculty.id)
        ).unique().scalars()
        available = []
        for faculty in candidates:
            if faculty.id in busy or not self.availability(faculty.id, on).available:
                continue
            available.append((faculty, self.current_load(faculty.id).sections))
        return available

    def summary(self, faculty_id: int) -> dict:
        faculty = self._faculty(faculty_id)
        ceiling = limits(faculty.employment_type)
        entries = self.entries(faculty_id)
        total_hours = sum(entry.duration or 0 for entry in entries)
        total_sections = len(entries)
        percentage = round(total_hours / ceiling.max_hours_per_week * 100) if ceiling.max_hours_per_week else 0
        available_hours = max(0, ceiling.max_hours_per_week - total_hours)

        by_day: dict[str, list[dict]] = defaultdict(list)
        for entry in entries:
            by_day[entry.day.value].append(
                {
                    "scheduleId": entry.id,
                    "subject": entry.subject.name,
                    "section": entry.class_section.name,
                    "time": entry.time,
                    "duration": entry.duration,
                }
            )
        hours_per_day = [
            {
                "day": day,
                "totalHours": sum(item["duration"] for item in by_day[day]),
                "numberOfClasses": len(by_day[day]),
            }
            for day in DAY_VALUES
            if day in by_day
        ]

        warnings = []
        if percentage >= 90:
            warnings.append("Faculty is near maximum capacity")
        if total_sections >= ceiling.max_sections:
            warnings.append("Maximum sections reached")
        if total_hours >= ceiling.max_hours_per_week:
            warnings.append("Maximum hours reached")

        can_take_more = total_sections < ceiling.max_sections and total_hours < ceiling.max_hours_per_week
        return {
            "employeeId": faculty.employee_id,
            "facultyId": faculty.id,
            "name": faculty.full_name,
            "email": faculty.email,
            "employmentType": faculty.employment_type.value,
            "workload": {
                "totalSections": total_sections,
                "totalHoursPerWeek": total_hours,
                "maxHoursPerWeek": ceiling.max_hours_per_week,
                "maxSections": ceiling.max_sections,
                "availableHours": available_hours,
                "workloadPercentage": percentage,
                "canTakeMoreSections": can_take_more,
                "status": load_status(percentage),
            },
            "scheduleByDay": dict(by_day),
            "hoursPerDay": hours_per_day,
            "recommendations": {
                "canAssignMore": can_take_more,
                "suggestedMaxAdditionalHours": available_hours,
                "suggestedMaxAdditionalSections": max(0, ceiling.max_sections - total_sections),
                "warnings": warnings,
            },
        }
