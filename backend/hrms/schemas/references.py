"""Caller-supplied references to faculty, subjects and sections.

A reference is one of ``ById``, ``ByFullName``, ``ByEmail`` (faculty) or
``ById``, ``ByName`` (subject, section). Resolution dispatches on the variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ById:
    id: int

    def describe(self) -> str:
        return f"ID {self.id}"


@dataclass(frozen=True)
class ByFullName:
    full_name: str

    def describe(self) -> str:
        return f'with name "{self.full_name}"'


@dataclass(frozen=True)
class ByEmail:
    email: str

    def describe(self) -> str:
        return f'with email "{self.email}"'


@dataclass(frozen=True)
class ByName:
    name: str

    def describe(self) -> str:
        return f'"{self.name}"'


FacultyReference = Union[ById, ByFullName, ByEmail]
NamedReference = Union[ById, ByName]


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_id(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = int(value)
    else:
        text = _clean(value)
        if text is None or not text.isdigit():
            return None
        number = int(text)
    return number if number > 0 else None


def faculty_reference(*, id=None, full_name=None, email=None) -> FacultyReference | None:
    """Precedence is id, then full name, then email; returns None when nothing usable is given."""
    faculty_id = _as_id(id)
    if faculty_id is not None:
        return ById(faculty_id)
    if _clean(full_name):
        return ByFullName(_clean(full_name))
    if _clean(email):
        return ByEmail(_clean(email))
    return None


def named_reference(*, id=None, name=None) -> NamedReference | None:
    ref_id = _as_id(id)
    if ref_id is not None:
        return ById(ref_id)
    if _clean(name):
        return ByName(_clean(name))
    return None
