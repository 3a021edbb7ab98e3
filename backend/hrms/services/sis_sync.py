"""Best-effort propagation of teacher assignments to the student-information system.

A sync outcome never turns a committed local write into a failure: every path
below returns a ``SyncOutcome`` and nothing is raised to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.core.config import Settings, get_settings
from hrms.core.signing import signed_headers
from hrms.models.faculty import Faculty

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    disabled = "disabled"
    skipped = "skipped"
    not_supported = "not_supported"
    failed = "failed"
    succeeded = "succeeded"


@dataclass(frozen=True)
class SyncOutcome:
    status: SyncStatus
    message: str | None = None
    error: str | None = None

    @property
    def synced(self) -> bool:
        return self.status == SyncStatus.succeeded

    def as_dict(self) -> dict:
        # `success` describes the local write, which has already happened.
        return {
            "success": True,
            "synced": self.synced,
            "status": self.status.value,
            "message": self.message,
            "error": self.error,
        }


def _response_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {"error": "Invalid JSON response", "raw": response.text}
    return data if isinstance(data, dict) else {"data": data}


class SISSyncGateway:
    def __init__(self, db: Session, settings: Settings | None = None, *, client: httpx.Client | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self._client = client

    def _preflight(self) -> SyncOutcome | None:
        if not self.settings.sis_sync_enabled:
            return SyncOutcome(SyncStatus.disabled, message="SIS sync is disabled (sis_sync_enabled is false)")
        if not self.settings.sis_shared_secret:
            logger.warning("[SIS Sync] Missing shared secret - skipping sync")
            return SyncOutcome(SyncStatus.skipped, message="SIS sync skipped: missing shared secret")
        if not self.settings.sis_api_key:
            logger.warning("[SIS Sync] Missing API key - skipping sync")
            return SyncOutcome(SyncStatus.skipped, message="SIS sync skipped: missing API key")
        return None

    def _teacher_payload(self, employee_id: str) -> dict | None:
        stmt = select(Faculty).where(Faculty.employee_id == employee_id)
        faculty = self.db.execute(stmt).unique().scalar_one_or_none()
        if faculty is None or faculty.user is None:
            return None
        return {
            "teacherId": employee_id,
            "teacherName": faculty.full_name,
            "teacherEmail": faculty.email or "",
        }

    @property
    def endpoint_url(self) -> str:
        return f"{self.settings.sis_base_url.rstrip('/')}{self.settings.sis_update_endpoint}"

    def sync_assignment(self, schedule_ref_id: int, employee_id: str, assigned: bool = True) -> SyncOutcome:
        outcome = self._preflight()
        if outcome is not None:
            return outcome
        if not assigned:
            return SyncOutcome(
                SyncStatus.skipped,
                message="SIS does not support unassignment via API; unassign manually in SIS.",
            )

        teacher = self._teacher_payload(employee_id)
        if teacher is None:
            logger.warning("[SIS Sync] Faculty not found for employee %s", employee_id)
            return SyncOutcome(
                SyncStatus.skipped,
                message=f"SIS sync skipped: Faculty not found for employee {employee_id}",
            )

        raw_body = json.dumps({"scheduleId": schedule_ref_id, "teacher": teacher}, separators=(",", ":"))
        headers = signed_headers(
            secret=self.settings.sis_shared_secret,
            api_key=self.settings.sis_api_key,
            body=raw_body,
        )
        url = self.endpoint_url
        logger.info("[SIS Sync] Syncing schedule %s to %s", schedule_ref_id, url)
        try:
            if self._client is not None:
                response = self._client.post(url, content=raw_body, headers=headers)
            else:
                with httpx.Client(timeout=self.settings.sis_timeout_seconds) as client:
                    response = client.post(url, content=raw_body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("[SIS Sync] Error syncing schedule %s: %s", schedule_ref_id, exc)
            return SyncOutcome(
                SyncStatus.failed,
                message="Assignment saved, but sync to SIS encountered an error.",
                error=str(exc) or exc.__class__.__name__,
            )

        return self._interpret(response, schedule_ref_id=schedule_ref_id, employee_id=employee_id)

    def _interpret(self, response: httpx.Response, *, schedule_ref_id: int, employee_id: str) -> SyncOutcome:
        if response.is_success:
            logger.info("[SIS Sync] Synced schedule %s for employee %s", schedule_ref_id, employee_id)
            return SyncOutcome(SyncStatus.succeeded, message="Assignment synced to SIS successfully")

        data = _response_json(response)
        if response.status_code == 404:
            logger.warning("[SIS Sync] SIS endpoint not found (404): %s", response.request.url)
            return SyncOutcome(
                SyncStatus.not_supported,
                message="SIS sync endpoint not available (404). Assignment saved locally only.",
            )

        if response.status_code == 409:
            current = data.get("currentTeacher")
            if not isinstance(current, dict):
                current = {}
            if current.get("teacherId") == employee_id:
                return SyncOutcome(
                    SyncStatus.succeeded,
                    message="Schedule already has this teacher assigned in SIS. No update needed.",
                )
            current_name = current.get("teacherName") or current.get("teacherId") or "another teacher"
            logger.warning("[SIS Sync] Schedule %s already has %s assigned in SIS", schedule_ref_id, current_name)
            return SyncOutcome(
                SyncStatus.failed,
                message=(
                    f"Assignment saved, but SIS already has {current_name} assigned. "
                    "Unassign the current teacher in SIS first, then try again."
                ),
                error=f"Schedule already has {current_name} assigned in SIS",
            )

        reason = data.get("error") or response.reason_phrase or "Unknown error"
        logger.warning("[SIS Sync] Failed to sync schedule %s: %s - %s", schedule_ref_id, response.status_code, reason)
        return SyncOutcome(
            SyncStatus.failed,
            message=f"Assignment saved, but sync to SIS failed: {reason}",
            error=f"SIS sync failed: {reason}",
        )
