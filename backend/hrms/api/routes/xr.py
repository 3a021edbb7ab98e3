"""Signed read endpoints consumed by the SIS and LMS."""

from datetime import date
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from hrms.api.deps import InboundCaller, get_db, verify_signed_request
from hrms.models.leave_request import LeaveStatus
from hrms.schemas.workload import WorkloadValidateRequest
from hrms.services.section_roster import SectionRoster
from hrms.services.workload import WorkloadCalculator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/faculty-workload/{employee_id}")
def faculty_workload(
    employee_id: str,
    caller: InboundCaller = Depends(verify_signed_request),
    db: Session = Depends(get_db),
) -> dict:
    calculator = WorkloadCalculator(db)
    faculty = calculator.faculty_by_employee_id(employee_id)
    logger.info("Workload summary for %s requested by %s", employee_id, caller.system)
    return calculator.summary(faculty.id)


@router.post("/faculty-workload/validate")
def validate_faculty_workload(
    caller: InboundCaller = Depends(verify_signed_request),
    db: Session = Depends(get_db),
) -> dict:
    # The signature covers the raw bytes, so the body is parsed from what was verified.
    try:
        payload = WorkloadValidateRequest.model_validate_json(caller.body or b"{}")
    except PydanticValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request data") from exc

    calculator = WorkloadCalculator(db)
    faculty = calculator.faculty_by_employee_id(payload.employee_id)
    validation = calculator.validate_assignment(
        faculty.id,
        additional_hours=payload.additional_hours,
        additional_sections=payload.additional_sections,
        day=payload.day,
        time=payload.time,
        duration=payload.duration,
    )
    decision = validation.decision
    if not validation.availability.available:
        leave = validation.availability.leave
        return {
            "canAssign": False,
            "reason": validation.availability.reason,
            "currentLeave": (
                {
                    "type": leave.leave_type.value,
                    "startDate": leave.start_date.isoformat(),
                    "endDate": leave.end_date.isoformat(),
                }
                if leave is not None
                else None
            ),
        }

    limits = decision.limits
    proposed = decision.proposed
    return {
        "canAssign": validation.can_assign,
        "reason": "; ".join(validation.reasons) if validation.reasons else "Faculty can take additional workload",
        "validation": {
            "employeeId": faculty.employee_id,
            "facultyId": faculty.id,
            "name": faculty.full_name,
            "employmentType": faculty.employment_type.value,
        },
        "currentWorkload": {
            "sections": decision.current.sections,
            "hoursPerWeek": decision.current.hours_per_week,
        },
        "proposedWorkload": {"sections": proposed.sections, "hoursPerWeek": proposed.hours_per_week},
        "limits": {"maxSections": limits.max_sections, "maxHoursPerWeek": limits.max_hours_per_week},
        "availability": {
            "remainingSections": max(0, limits.max_sections - proposed.sections),
            "remainingHours": max(0, limits.max_hours_per_week - proposed.hours_per_week),
        },
        "checks": {
            "exceedsHours": proposed.hours_per_week > limits.max_hours_per_week,
            "exceedsSections": proposed.sections > limits.max_sections,
            "scheduleConflict": bool(validation.conflicts),
        },
        "conflicts": [
            {
                "day": entry.day.value,
                "time": entry.time,
                "duration": entry.duration,
                "subject": entry.subject.name,
                "section": entry.class_section.name,
            }
            for entry in validation.conflicts
        ],
    }


def _leave_out(leave) -> dict:
    return {
        "leaveId": leave.id,
        "type": leave.leave_type.value,
        "startDate": leave.start_date.isoformat(),
        "endDate": leave.end_date.isoformat(),
        "reason": leave.reason,
        "status": leave.status.value,
    }


@router.get("/faculty-availability/{employee_id}")
def faculty_availability(
    employee_id: str,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    caller: InboundCaller = Depends(verify_signed_request),
    db: Session = Depends(get_db),
) -> dict:
    if start_date is not None and end_date is not None and end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="endDate must not be before startDate")

    calculator = WorkloadCalculator(db)
    faculty = calculator.faculty_by_employee_id(employee_id)
    today = date.today()
    availability = calculator.availability(faculty.id, today)
    leaves = calculator.leaves_between(faculty.id, start_date, end_date)
    current = availability.leave
    logger.info("Availability for %s requested by %s", employee_id, caller.system)
    return {
        "employeeId": faculty.employee_id,
        "facultyId": faculty.id,
        "name": faculty.full_name,
        "email": faculty.email,
        "isAvailable": availability.available,
        "availability": {
            "status": "Available" if availability.available else "Unavailable",
            "reason": availability.reason,
        },
        "employmentStatus": faculty.employment_status.value,
        "employmentType": faculty.employment_type.value,
        "userStatus": faculty.user.status.value if faculty.user is not None else None,
        "currentLeave": _leave_out(current) if current is not None else None,
        "upcomingLeaves": [
            _leave_out(leave)
            for leave in leaves
            if leave.start_date > today and leave.status == LeaveStatus.approved
        ],
        "recentLeaves": [_leave_out(leave) for leave in leaves if current is None or leave.id != current.id][:5],
    }


@router.get("/section-assignments")
def section_assignments(
    section_id: int | None = Query(default=None, alias="sectionId", gt=0),
    grade_level: str | None = Query(default=None, alias="gradeLevel", max_length=50),
    caller: InboundCaller = Depends(verify_signed_request),
    db: Session = Depends(get_db),
) -> dict:
    assignments = SectionRoster(db).assignments(section_id=section_id, grade_level=grade_level)
    logger.info("Returning %d section assignment(s) to %s", len(assignments), caller.system)
    return {"success": True, "count": len(assignments), "assignments": assignments}
