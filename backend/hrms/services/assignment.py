from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.core.exceptions import ConflictError, NotFoundError, ValidationError
from hrms.models.activity_log import ScheduleAction
from hrms.models.faculty import Faculty
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.schemas.references import ById
from hrms.schemas.schedule import AssignTeacherRequest, ScheduleRequest, ScheduleUpdate
from hrms.services import schedule_store, time_interval
from hrms.services.conflict_service import ConflictChecker, entry_interval
from hrms.services.entity_resolver import EntityResolver, ResolvedAssignment
from hrms.services.sis_sync import SISSyncGateway, SyncOutcome, SyncStatus
from hrms.services.workload import WorkloadCalculator

logger = logging.getLogger(__name__)


class CreateStatus(str, Enum):
    success = "success"
    partial = "partial"
    failed = "failed"


@dataclass
class CreateError:
    index: int
    message: str
    day: Weekday | None = None
    status_code: int = 400


@dataclass
class CreateResult:
    created: list[ScheduleEntry] = field(default_factory=list)
    errors: list[CreateError] = field(default_factory=list)

    @property
    def status(self) -> CreateStatus:
        if not self.created:
            return CreateStatus.failed
        if self.errors:
            return CreateStatus.partial
        return CreateStatus.success


@dataclass
class AssignmentOutcome:
    entry: ScheduleEntry
    reassigned: bool
    sync: SyncOutcome | None = None
    restored: bool = False

    @property
    def message(self) -> str:
        if self.restored:
            message = "Original teacher restored successfully"
        elif self.reassigned:
            message = "Teacher reassigned successfully"
        else:
            message = "Teacher assigned successfully"
        if self.sync is not None:
            if self.sync.synced:
                message += " and synced to SIS"
            elif self.sync.message:
                message += f" ({self.sync.message})"
        return message


class ScheduleAssignmentService:
    """The only component that creates or changes schedule entries."""

    def __init__(
        self,
        db: Session,
        *,
        resolver: EntityResolver | None = None,
        checker: ConflictChecker | None = None,
        workload: WorkloadCalculator | None = None,
        sync_gateway: SISSyncGateway | None = None,
        source: str = "api",
    ) -> None:
        self.db = db
        self.resolver = resolver or EntityResolver(db)
        self.checker = checker or ConflictChecker(db)
        self.workload = workload or WorkloadCalculator(db)
        self.sync_gateway = sync_gateway
        self.source = source

    def create(
        self,
        requests: ScheduleRequest | Sequence[ScheduleRequest],
        *,
        enforce_workload: bool = False,
    ) -> CreateResult:
        """Create one entry per (request, day); failures are scoped to the request or the day."""
        batch = [requests] if isinstance(requests, ScheduleRequest) else list(requests)
        result = CreateResult()
        for index, request in enumerate(batch):
            try:
                resolved = self.resolver.resolve(
                    request.faculty_ref.to_reference(),
                    request.subject_ref.to_reference(),
                    request.section_ref.to_reference(),
                )
            except (NotFoundError, ValidationError) as exc:
                result.errors.append(CreateError(index=index, message=exc.message, status_code=exc.status_code))
                continue

            for day in request.target_days():
                try:
                    if enforce_workload:
                        self._ensure_capacity(resolved.faculty_id, request.duration)
                    entry = self._create_one(resolved, day, request.time, request.duration, pending=result.created)
                except (ConflictError, ValidationError) as exc:
                    result.errors.append(
                        CreateError(index=index, message=exc.message, day=day, status_code=exc.status_code)
                    )
                    continue
                result.created.append(entry)

        logger.info(
            "Schedule create batch: %d request(s), %d created, %d error(s)",
            len(batch),
            len(result.created),
            len(result.errors),
        )
        return result

    def _ensure_capacity(self, faculty_id: int, duration: float) -> None:
        decision = self.workload.can_accept(faculty_id, duration, 1)
        if not decision.allowed:
            raise ValidationError("; ".join(decision.reasons))

    def _create_one(
        self,
        resolved: ResolvedAssignment,
        day: Weekday,
        time: str,
        duration: float,
        *,
        pending: Sequence[ScheduleEntry] = (),
    ) -> ScheduleEntry:
        self.checker.ensure_no_conflict(
            faculty_id=resolved.faculty_id,
            section_id=resolved.section_id,
            day=day,
            time=time,
            pending=pending,
        )
        return schedule_store.insert_entry(
            self.db,
            faculty_id=resolved.faculty_id,
            subject_id=resolved.subject_id,
            section_id=resolved.section_id,
            day=day,
            time=time,
            duration=duration,
            source=self.source,
        )

    def _find_slot(self, *, subject_id: int, section_id: int, day: Weekday, time: str) -> ScheduleEntry | None:
        # Compared as intervals: rows from external tooling may carry "09:00-10:00" for "9:00-10:00".
        wanted = time_interval.parse(time)
        stmt = (
            select(ScheduleEntry)
            .where(
                ScheduleEntry.subject_id == subject_id,
                ScheduleEntry.class_section_id == section_id,
                ScheduleEntry.day == day,
            )
            .order_by(ScheduleEntry.id)
        )
        for candidate in self.db.execute(stmt).unique().scalars():
            if entry_interval(candidate) == wanted:
                return candidate
        return None

    def _reassign(
        self,
        target: ScheduleEntry,
        *,
        faculty_id: int,
        duration: float,
        action: ScheduleAction = ScheduleAction.reassigned,
    ) -> ScheduleEntry:
        time = time_interval.format_range(entry_interval(target))
        self.checker.ensure_no_conflict(
            faculty_id=faculty_id,
            section_id=target.class_section_id,
            day=target.day,
            time=time,
            exclude_entry_id=target.id,
        )
        return schedule_store.update_entry(
            self.db,
            target,
            faculty_id=faculty_id,
            subject_id=target.subject_id,
            section_id=target.class_section_id,
            day=target.day,
            time=time,
            duration=duration,
            action=action,
            source=self.source,
        )

    def update(self, entry_id: int, request: ScheduleUpdate) -> ScheduleEntry:
        entry = self.db.get(ScheduleEntry, entry_id)
        if entry is None:
            raise NotFoundError("Schedule", entry_id, f"Schedule {entry_id} not found")

        faculty_id = (
            self.resolver.resolve_faculty(request.faculty_ref.to_reference())
            if request.faculty_ref is not None
            else self.resolver.resolve_faculty(ById(entry.faculty_id))
        )
        subject_id = self.resolver.resolve_subject(request.subject_ref.to_reference())
        section_id = self.resolver.resolve_section(request.section_ref.to_reference())

        existing = self._find_slot(subject_id=subject_id, section_id=section_id, day=request.day, time=request.time)
        if existing is not None and existing.id != entry.id:
            logger.info("Schedule %s matches existing slot %s; reassigning it in place", entry_id, existing.id)
            return self._reassign(existing, faculty_id=faculty_id, duration=request.duration)

        self.checker.ensure_no_conflict(
            faculty_id=faculty_id,
            section_id=section_id,
            day=request.day,
            time=request.time,
            exclude_entry_id=entry.id,
        )
        return schedule_store.update_entry(
            self.db,
            entry,
            faculty_id=faculty_id,
            subject_id=subject_id,
            section_id=section_id,
            day=request.day,
            time=request.time,
            duration=request.duration,
            source=self.source,
        )

    def assign_from_sis(self, request: AssignTeacherRequest) -> AssignmentOutcome:
        """Assign a teacher to an externally sourced slot, then notify the SIS."""
        resolved = self.resolver.resolve(
            ById(request.faculty_id),
            ById(request.subject_id),
            ById(request.class_section_id),
        )
        existing = self._find_slot(
            subject_id=resolved.subject_id,
            section_id=resolved.section_id,
            day=request.day,
            time=request.time,
        )
        if existing is not None:
            entry = self._reassign(existing, faculty_id=resolved.faculty_id, duration=request.duration)
            outcome = AssignmentOutcome(entry=entry, reassigned=True)
        else:
            entry = self._create_one(resolved, request.day, request.time, request.duration)
            outcome = AssignmentOutcome(entry=entry, reassigned=False)

        if request.sis_schedule_id is not None:
            outcome.sync = self._sync(request.sis_schedule_id, resolved.faculty_id)
        return outcome

    def restore_original_teacher(
        self,
        entry_id: int,
        original_faculty_id: int,
        *,
        sis_schedule_id: int | None = None,
    ) -> AssignmentOutcome:
        """Hands a slot covered by a substitute back to its original teacher, then notifies the SIS."""
        entry = self.db.get(ScheduleEntry, entry_id)
        if entry is None:
            raise NotFoundError("Schedule", entry_id, "Schedule not found")
        faculty_id = self.resolver.resolve_faculty(ById(original_faculty_id))

        previous_faculty_id = entry.faculty_id
        if previous_faculty_id != faculty_id:
            entry = self._reassign(
                entry,
                faculty_id=faculty_id,
                duration=entry.duration,
                action=ScheduleAction.restored,
            )
        logger.info("Schedule %s restored to faculty %s (was %s)", entry.id, faculty_id, previous_faculty_id)

        outcome = AssignmentOutcome(entry=entry, reassigned=previous_faculty_id != faculty_id, restored=True)
        if sis_schedule_id is not None:
            outcome.sync = self._sync(sis_schedule_id, faculty_id)
        return outcome

    def _sync(self, sis_schedule_id: int, faculty_id: int) -> SyncOutcome:
        faculty = self.db.get(Faculty, faculty_id)
        if faculty is None or not faculty.employee_id:
            return SyncOutcome(SyncStatus.skipped, message="SIS sync skipped: faculty has no employee ID")
        gateway = self.sync_gateway or SISSyncGateway(self.db)
        try:
            return gateway.sync_assignment(sis_schedule_id, faculty.employee_id, assigned=True)
        except Exception as exc:  # the local write is already committed
            logger.exception("[SIS Sync] Unexpected error syncing schedule %s", sis_schedule_id)
            return SyncOutcome(
                SyncStatus.failed,
                message="Assignment saved, but sync to SIS encountered an error.",
                error=str(exc) or exc.__class__.__name__,
            )
