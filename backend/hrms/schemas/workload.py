from __future__ import annotations

from pydantic import Field, field_validator

from hrms.models.schedule import Weekday
from hrms.schemas.common import CamelModel
from hrms.schemas.schedule import validate_time_token


class WorkloadValidateRequest(CamelModel):
    employee_id: str = Field(min_length=1, max_length=50)
    additional_hours: float = Field(default=0, ge=0)
    additional_sections: int = Field(default=0, ge=0)
    day: Weekday | None = None
    time: str | None = None
    duration: float | None = Field(default=None, ge=0)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return validate_time_token(value) if value is not None else None
