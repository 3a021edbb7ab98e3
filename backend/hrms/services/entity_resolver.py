from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrms.core.exceptions import AmbiguousReferenceError, NotFoundError, ValidationError
from hrms.models.academics import ClassSection, Subject
from hrms.models.faculty import Faculty
from hrms.models.user import User
from hrms.schemas.references import ByEmail, ByFullName, ById, ByName, FacultyReference, NamedReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAssignment:
    faculty_id: int
    subject_id: int
    section_id: int


def _collapse(value: str) -> str:
    return " ".join(value.split()).lower()


class EntityResolver:
    """Translates id / name / email references into canonical ids. Read-only."""

    def __init__(self, db: Session, *, allow_fuzzy: bool = True) -> None:
        self.db = db
        self.allow_fuzzy = allow_fuzzy

    def resolve(
        self,
        faculty_ref: FacultyReference,
        subject_ref: NamedReference,
        section_ref: NamedReference,
    ) -> ResolvedAssignment:
        return ResolvedAssignment(
            faculty_id=self.resolve_faculty(faculty_ref),
            subject_id=self.resolve_subject(subject_ref),
            section_id=self.resolve_section(section_ref),
        )

    # Faculty

    def _faculty_linked(self):
        return (
            select(Faculty.id, User.first_name, User.last_name)
            .join(User, Faculty.user_id == User.id)
            .where(Faculty.is_deleted.is_(False))
        )

    def resolve_faculty(self, ref: FacultyReference) -> int:
        if isinstance(ref, ById):
            faculty = self.db.get(Faculty, ref.id)
            if faculty is None or faculty.is_deleted:
                raise NotFoundError("Faculty", ref.id, f"Faculty ID {ref.id} not found")
            return faculty.id
        if isinstance(ref, ByFullName):
            return self._resolve_faculty_by_name(ref.full_name)
        if isinstance(ref, ByEmail):
            return self._resolve_faculty_by_email(ref.email)
        raise ValidationError("Either facultyId, facultyName, or facultyEmail must be provided")

    def _resolve_faculty_by_name(self, full_name: str) -> int:
        parts = full_name.split()
        if len(parts) < 2:
            raise ValidationError(f'Faculty name "{full_name}" must include both first and last name')
        given, family = parts[0], " ".join(parts[1:])

        stmt = self._faculty_linked().where(
            func.lower(User.first_name) == given.lower(),
            func.lower(User.last_name) == family.lower(),
        )
        matches = [row.id for row in self.db.execute(stmt)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise AmbiguousReferenceError("Faculty", full_name, matches)

        if self.allow_fuzzy:
            fuzzy = self._fuzzy_full_name_scan(full_name)
            if len(fuzzy) == 1:
                return fuzzy[0]
            if len(fuzzy) > 1:
                raise AmbiguousReferenceError("Faculty", full_name, fuzzy)
        raise NotFoundError("Faculty", full_name, f'Faculty with name "{full_name}" not found')

    def _fuzzy_full_name_scan(self, full_name: str) -> list[int]:
        """Full-table scan comparing "given family" strings; catches multi-word given names."""
        target = _collapse(full_name)
        matches = [
            row.id
            for row in self.db.execute(self._faculty_linked())
            if _collapse(f"{row.first_name} {row.last_name}") == target
        ]
        if matches:
            logger.info("Resolved faculty %r by full-name scan (%d match(es))", full_name, len(matches))
        return matches

    def _resolve_faculty_by_email(self, email: str) -> int:
        stmt = (
            select(Faculty.id)
            .join(User, Faculty.user_id == User.id)
            .where(Faculty.is_deleted.is_(False), func.lower(User.email) == email.strip().lower())
        )
        matches = list(self.db.execute(stmt).scalars())
        if not matches:
            raise NotFoundError("Faculty", email, f'Faculty with email "{email}" not found')
        if len(matches) > 1:
            raise AmbiguousReferenceError("Faculty", email, matches)
        return matches[0]

    # Subject / section

    def resolve_subject(self, ref: NamedReference) -> int:
        return self._resolve_named(Subject, "Subject", ref)

    def resolve_section(self, ref: NamedReference) -> int:
        return self._resolve_named(ClassSection, "Section", ref)

    def _resolve_named(self, model, label: str, ref: NamedReference) -> int:
        if isinstance(ref, ById):
            record = self.db.get(model, ref.id)
            if record is None:
                raise NotFoundError(label, ref.id, f"{label} ID {ref.id} not found")
            return record.id
        if isinstance(ref, ByName):
            stmt = select(model.id).where(func.lower(model.name) == ref.name.strip().lower())
            matches = list(self.db.execute(stmt).scalars())
            if not matches:
                raise NotFoundError(label, ref.name, f'{label} "{ref.name}" not found')
            if len(matches) > 1:
                raise AmbiguousReferenceError(label, ref.name, matches)
            return matches[0]
        raise ValidationError(f"Either {label.lower()} id or name must be provided")
