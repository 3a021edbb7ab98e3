"""Seed demo faculty, subjects, sections and a starter timetable.

Run:
  PYTHONPATH=backend python scripts/seed_school_data.py
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from hrms.db.bootstrap import ensure_runtime_schema_compatibility
from hrms.db.session import SessionLocal
from hrms.models.academics import ClassSection, Subject
from hrms.models.faculty import EmploymentStatus, EmploymentType, Faculty
from hrms.models.schedule import ScheduleEntry
from hrms.models.user import User, UserStatus
from hrms.services.bulk_import import BulkImportProcessor

MOCK_EMAIL_DOMAIN = os.getenv("SEED_MOCK_EMAIL_DOMAIN", "school.edu").strip().lower() or "school.edu"

FACULTY_PROFILES = [
    {"employee_id": "EMP-1001", "first_name": "Maria", "last_name": "Santos", "position": "Math Teacher",
     "employment_type": EmploymentType.full_time},
    {"employee_id": "EMP-1002", "first_name": "Jose", "last_name": "Reyes", "position": "Science Teacher",
     "employment_type": EmploymentType.full_time},
    {"employee_id": "EMP-1003", "first_name": "Ana Marie", "last_name": "Cruz", "position": "English Teacher",
     "employment_type": EmploymentType.probationary},
    {"employee_id": "EMP-1004", "first_name": "Paolo", "last_name": "Garcia", "position": "Filipino Teacher",
     "employment_type": EmploymentType.part_time},
]

SUBJECTS = [
    ("Mathematics", "MATH"),
    ("Science", "SCI"),
    ("English", "ENG"),
    ("Filipino", "FIL"),
]

SECTIONS = [
    ("Grade 7 - Rizal", "Grade 7"),
    ("Grade 7 - Bonifacio", "Grade 7"),
    ("Grade 8 - Mabini", "Grade 8"),
]

STARTER_TIMETABLE = [
    {"facultyName": "Maria Santos", "subjectName": "Mathematics", "sectionName": "Grade 7 - Rizal",
     "day": "Monday", "time": "7:30-8:30", "duration": 1},
    {"facultyName": "Jose Reyes", "subjectName": "Science", "sectionName": "Grade 7 - Rizal",
     "day": "Monday", "time": "8:30-9:30", "duration": 1},
    {"facultyName": "Ana Marie Cruz", "subjectName": "English", "sectionName": "Grade 7 - Bonifacio",
     "day": "Tuesday", "time": "9:00-10:30", "duration": 1.5},
    {"facultyName": "Paolo Garcia", "subjectName": "Filipino", "sectionName": "Grade 8 - Mabini",
     "day": "Wednesday", "time": "13:00-14:00", "duration": 1},
]


def mock_email(first_name: str, last_name: str) -> str:
    local = ".".join(part.lower() for part in f"{first_name} {last_name}".split())
    return f"{local}@{MOCK_EMAIL_DOMAIN}"


def upsert_faculty(session, profile: dict) -> Faculty:
    email = mock_email(profile["first_name"], profile["last_name"])
    user = session.execute(select(User).where(func.lower(User.email) == email)).scalar_one_or_none()
    if user is None:
        user = User(email=email)
        session.add(user)
    user.first_name = profile["first_name"]
    user.last_name = profile["last_name"]
    user.status = UserStatus.active
    session.flush()

    faculty = session.execute(
        select(Faculty).where(Faculty.employee_id == profile["employee_id"])
    ).unique().scalar_one_or_none()
    if faculty is None:
        faculty = Faculty(employee_id=profile["employee_id"], user_id=user.id)
        session.add(faculty)
    faculty.position = profile["position"]
    faculty.employment_type = profile["employment_type"]
    faculty.employment_status = EmploymentStatus.regular
    faculty.is_deleted = False
    return faculty


def upsert_subjects(session) -> None:
    for name, code in SUBJECTS:
        subject = session.execute(select(Subject).where(Subject.code == code)).scalar_one_or_none()
        if subject is None:
            session.add(Subject(name=name, code=code))
        else:
            subject.name = name


def upsert_sections(session) -> None:
    for name, grade_level in SECTIONS:
        section = session.execute(select(ClassSection).where(ClassSection.name == name)).scalar_one_or_none()
        if section is None:
            session.add(ClassSection(name=name, grade_level=grade_level))
        else:
            section.grade_level = grade_level


def main() -> None:
    ensure_runtime_schema_compatibility()
    with SessionLocal() as session:
        for profile in FACULTY_PROFILES:
            upsert_faculty(session, profile)
        upsert_subjects(session)
        upsert_sections(session)
        session.commit()

        # Re-running reports the starter rows as conflicts instead of duplicating them.
        result = BulkImportProcessor(session).import_batch(STARTER_TIMETABLE)

        faculty_count = session.execute(select(func.count(Faculty.id))).scalar_one()
        subject_count = session.execute(select(func.count(Subject.id))).scalar_one()
        section_count = session.execute(select(func.count(ClassSection.id))).scalar_one()
        schedule_count = session.execute(select(func.count(ScheduleEntry.id))).scalar_one()

    print("School data seeded successfully.")
    print("")
    print(f"Faculty records: {faculty_count}")
    print(f"Subjects: {subject_count}")
    print(f"Class sections: {section_count}")
    print(f"Schedule entries: {schedule_count} ({result.success} created this run, {result.failed} skipped)")


if __name__ == "__main__":
    main()
