from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.models.academics import ClassSection
from hrms.models.schedule import DAY_VALUES, ScheduleEntry


class SectionRoster:
    """Who teaches each class section, derived from the committed schedule."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def assignments(self, *, section_id: int | None = None, grade_level: str | None = None) -> list[dict]:
        stmt = select(ClassSection)
        if section_id is not None:
            stmt = stmt.where(ClassSection.id == section_id)
        if grade_level:
            stmt = stmt.where(ClassSection.grade_level == grade_level)
        sections = list(self.db.execute(stmt.order_by(ClassSection.name, ClassSection.id)).scalars())
        if not sections:
            return []

        entries = self.db.execute(
            select(ScheduleEntry)
            .where(ScheduleEntry.class_section_id.in_([section.id for section in sections]))
            .order_by(ScheduleEntry.faculty_id, ScheduleEntry.id)
        ).unique().scalars()

        teachers: dict[int, dict[int, dict]] = {section.id: {} for section in sections}
        for entry in entries:
            faculty = entry.faculty
            teacher = teachers[entry.class_section_id].setdefault(
                faculty.id,
                {
                    "facultyId": faculty.id,
                    "employeeId": faculty.employee_id,
                    "fullName": faculty.full_name,
                    "email": faculty.email,
                    "subjects": [],
                    "days": [],
                    "hoursPerWeek": 0.0,
                },
            )
            if entry.subject.name not in teacher["subjects"]:
                teacher["subjects"].append(entry.subject.name)
            if entry.day.value not in teacher["days"]:
                teacher["days"].append(entry.day.value)
            teacher["hoursPerWeek"] += entry.duration or 0

        result = []
        for section in sections:
            roster = list(teachers[section.id].values())
            for teacher in roster:
                teacher["days"].sort(key=DAY_VALUES.index)
            result.append(
                {
                    "sectionId": section.id,
                    "sectionName": section.name,
                    "gradeLevel": section.grade_level,
                    "teachers": roster,
                }
            )
        return result
