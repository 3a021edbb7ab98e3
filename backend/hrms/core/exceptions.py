class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when a request is malformed (missing identifiers, bad time token, bad duration)."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class TimeFormatError(ValidationError):
    """Raised when a time-range token is not H:MM-H:MM / HH:MM-HH:MM."""
    def __init__(self, token: str, reason: str | None = None):
        message = reason or f'Invalid time format "{token}". Expected format: "HH:MM-HH:MM"'
        super().__init__(message, details={"time": token})


class AmbiguousReferenceError(ValidationError):
    """Raised when a name-based reference matches more than one record."""
    def __init__(self, resource_type: str, reference: str, candidate_ids: list):
        super().__init__(
            f'{resource_type} reference "{reference}" is ambiguous ({len(candidate_ids)} matches)',
            details={"candidates": candidate_ids},
        )
        self.status_code = 409


class NotFoundError(AppError):
    """Raised when a referenced faculty, subject, section or schedule cannot be resolved."""
    def __init__(self, resource_type: str, reference, message: str | None = None):
        super().__init__(message or f"{resource_type} {reference} not found", status_code=404)
        self.resource_type = resource_type
        self.reference = reference


class ConflictError(AppError):
    """Raised when a proposed slot overlaps an existing faculty or section entry."""
    def __init__(
        self,
        message: str,
        *,
        conflict_type: str,
        entry_id: int | None = None,
        subject_name: str | None = None,
        day: str | None = None,
        time: str | None = None,
    ):
        super().__init__(
            message,
            status_code=409,
            details={
                "type": conflict_type,
                "entry_id": entry_id,
                "subject": subject_name,
                "day": day,
                "time": time,
            },
        )
        self.conflict_type = conflict_type
        self.entry_id = entry_id
        self.subject_name = subject_name
        self.day = day
        self.time = time


class SlotTakenError(ConflictError):
    """Raised by the persistence guard when a concurrent write already claimed the slot."""


class StorageError(AppError):
    """Raised when the persistence layer fails unexpectedly. The message is deliberately generic."""
    def __init__(self, message: str = "Unexpected storage error. Please try again later."):
        super().__init__(message, status_code=500)


class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
