from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.api.deps import get_db
from hrms.core.exceptions import ValidationError
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.schemas.schedule import (
    AssignTeacherRequest,
    AssignTeacherResponse,
    AvailableTeacherOut,
    BulkImportRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictingScheduleOut,
    ConflictOut,
    CreateErrorOut,
    CreateResultOut,
    ImportResultOut,
    LeaveOut,
    LeaveStatusOut,
    LeaveStatusResponse,
    RestoreTeacherRequest,
    RowErrorOut,
    ScheduleEntryOut,
    ScheduleRequest,
    ScheduleUpdate,
    SyncOut,
)
from hrms.services.assignment import CreateResult, CreateStatus, ScheduleAssignmentService
from hrms.services.bulk_import import BulkImportProcessor, ImportResult
from hrms.services import time_interval
from hrms.services.conflict_service import ConflictChecker
from hrms.services.workload import WorkloadCalculator

router = APIRouter()


def _create_status_code(result: CreateResult) -> int:
    if result.status == CreateStatus.success:
        return status.HTTP_201_CREATED
    if result.status == CreateStatus.partial:
        return status.HTTP_207_MULTI_STATUS
    if any(error.status_code == status.HTTP_409_CONFLICT for error in result.errors):
        return status.HTTP_409_CONFLICT
    return result.errors[0].status_code if result.errors else status.HTTP_400_BAD_REQUEST


def _import_out(result: ImportResult) -> ImportResultOut:
    return ImportResultOut(
        success=result.success,
        failed=result.failed,
        errors=[RowErrorOut(row=error.row, message=error.message) for error in result.errors],
    )


@router.get("", response_model=list[ScheduleEntryOut])
def list_schedules(
    faculty_id: int | None = Query(default=None, alias="facultyId"),
    section_id: int | None = Query(default=None, alias="sectionId"),
    day: Weekday | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[ScheduleEntryOut]:
    stmt = select(ScheduleEntry)
    if faculty_id is not None:
        stmt = stmt.where(ScheduleEntry.faculty_id == faculty_id)
    if section_id is not None:
        stmt = stmt.where(ScheduleEntry.class_section_id == section_id)
    if day is not None:
        stmt = stmt.where(ScheduleEntry.day == day)
    stmt = stmt.order_by(ScheduleEntry.day, ScheduleEntry.start_minute, ScheduleEntry.id)
    return [ScheduleEntryOut.from_entry(entry) for entry in db.execute(stmt).unique().scalars()]


@router.post("", response_model=CreateResultOut)
def create_schedules(
    payload: ScheduleRequest | list[ScheduleRequest],
    db: Session = Depends(get_db),
) -> JSONResponse:
    result = ScheduleAssignmentService(db).create(payload)
    body = CreateResultOut(
        status=result.status.value,
        created=[ScheduleEntryOut.from_entry(entry) for entry in result.created],
        errors=[CreateErrorOut(index=error.index, day=error.day, message=error.message) for error in result.errors],
    )
    return JSONResponse(status_code=_create_status_code(result), content=body.model_dump(mode="json", by_alias=True))


@router.put("/{schedule_id}", response_model=ScheduleEntryOut)
def update_schedule(schedule_id: int, payload: ScheduleUpdate, db: Session = Depends(get_db)) -> ScheduleEntryOut:
    entry = ScheduleAssignmentService(db).update(schedule_id, payload)
    return ScheduleEntryOut.from_entry(entry)


@router.post("/check-conflicts", response_model=ConflictCheckResponse)
def check_conflicts(payload: ConflictCheckRequest, db: Session = Depends(get_db)) -> ConflictCheckResponse:
    conflicts = ConflictChecker(db).find_conflicts(
        faculty_id=payload.faculty_id,
        section_id=payload.class_section_id,
        day=payload.day,
        time=payload.time,
        exclude_entry_id=payload.schedule_id,
    )
    return ConflictCheckResponse(
        has_conflicts=bool(conflicts),
        conflicts=[
            ConflictOut(
                type=conflict.conflict_type,
                message=conflict.message,
                conflicting_schedule=ConflictingScheduleOut(
                    id=conflict.entry_id,
                    subject_name=conflict.subject_name,
                    section_name=conflict.section_name,
                    teacher_name=conflict.teacher_name,
                    day=conflict.day,
                    time=conflict.time,
                ),
            )
            for conflict in conflicts
        ],
    )


@router.post("/bulk-import", response_model=ImportResultOut)
def bulk_import(payload: BulkImportRequest, db: Session = Depends(get_db)) -> ImportResultOut:
    return _import_out(BulkImportProcessor(db).import_batch(payload.rows))


async def csv_text(request: Request) -> str:
    raw = await request.body()
    return raw.decode("utf-8-sig", errors="replace")


@router.post("/bulk-import/csv", response_model=ImportResultOut)
def bulk_import_csv(text: str = Depends(csv_text), db: Session = Depends(get_db)) -> ImportResultOut:
    return _import_out(BulkImportProcessor(db).import_csv(text))


@router.post("/assign-teacher", response_model=AssignTeacherResponse)
def assign_teacher(payload: AssignTeacherRequest, db: Session = Depends(get_db)) -> AssignTeacherResponse:
    outcome = ScheduleAssignmentService(db).assign_from_sis(payload)
    return AssignTeacherResponse(
        success=True,
        message=outcome.message,
        schedule=ScheduleEntryOut.from_entry(outcome.entry),
        sync=SyncOut(**outcome.sync.as_dict()) if outcome.sync is not None else None,
    )


@router.get("/available-teachers", response_model=list[AvailableTeacherOut])
def available_teachers(
    day: Weekday = Query(...),
    time: str = Query(...),
    db: Session = Depends(get_db),
) -> list[AvailableTeacherOut]:
    available = WorkloadCalculator(db).available_faculty(day, time_interval.normalize(time))
    return [
        AvailableTeacherOut(
            faculty_id=faculty.id,
            employee_id=faculty.employee_id,
            name=faculty.full_name,
            email=faculty.email,
            position=faculty.position,
            current_load=sections,
        )
        for faculty, sections in available
    ]


@router.post("/restore-original-teacher", response_model=AssignTeacherResponse)
def restore_original_teacher(payload: RestoreTeacherRequest, db: Session = Depends(get_db)) -> AssignTeacherResponse:
    outcome = ScheduleAssignmentService(db).restore_original_teacher(
        payload.hrms_schedule_id,
        payload.original_faculty_id,
        sis_schedule_id=payload.sis_schedule_id,
    )
    return AssignTeacherResponse(
        success=True,
        message=outcome.message,
        schedule=ScheduleEntryOut.from_entry(outcome.entry),
        sync=SyncOut(**outcome.sync.as_dict()) if outcome.sync is not None else None,
    )


def _faculty_ids(raw: str | None) -> list[int]:
    if not raw:
        raise ValidationError("Missing required parameter: facultyIds")
    ids = [int(part) for part in (item.strip() for item in raw.split(",")) if part.isdigit()]
    if not ids:
        raise ValidationError("Invalid facultyIds parameter", details={"facultyIds": raw})
    return ids


@router.get("/faculty-leave-status", response_model=LeaveStatusResponse)
def faculty_leave_status(
    faculty_ids: str | None = Query(default=None, alias="facultyIds"),
    db: Session = Depends(get_db),
) -> LeaveStatusResponse:
    status_by_faculty = WorkloadCalculator(db).leave_status(_faculty_ids(faculty_ids))
    return LeaveStatusResponse(
        leave_status={
            faculty_id: LeaveStatusOut(
                is_on_leave=leave is not None,
                leave=LeaveOut.from_leave(leave) if leave is not None else None,
            )
            for faculty_id, leave in status_by_faculty.items()
        }
    )
