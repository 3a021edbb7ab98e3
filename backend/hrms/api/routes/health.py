from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hrms.core.config import get_settings
from hrms.db.bootstrap import missing_schema
from hrms.db.session import engine

router = APIRouter()

settings = get_settings()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_status() -> dict:
    status = {"ok": True, "schema_ok": False, "missing_tables": [], "missing_columns": {}, "error": None}
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        status["missing_tables"], status["missing_columns"] = missing_schema(engine)
    except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
        status["ok"] = False
        status["error"] = exc.__class__.__name__
        return status
    status["schema_ok"] = not status["missing_tables"] and not status["missing_columns"]
    return status


def _sis_sync_status() -> dict:
    return {
        "enabled": settings.sis_sync_enabled,
        "configured": bool(settings.sis_shared_secret and settings.sis_api_key),
        "endpoint": f"{settings.sis_base_url.rstrip('/')}{settings.sis_update_endpoint}",
    }


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    """Readiness: the database answers and carries the tables the scheduler needs."""
    database = _database_status()
    ready = database["ok"] and database["schema_ok"]
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": _now(),
        "database": database,
        "sis_sync": _sis_sync_status(),
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
