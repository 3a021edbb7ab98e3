import pytest

from hrms.core.exceptions import ConflictError, StorageError
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.services.conflict_service import ConflictChecker


@pytest.fixture()
def school(seed):
    teacher = seed.faculty("Maria", "Santos")
    other_teacher = seed.faculty("Jose", "Reyes")
    math = seed.subject("Mathematics")
    science = seed.subject("Science")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    entry = seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")
    return teacher, other_teacher, math, science, rizal, bonifacio, entry


def test_faculty_overlap_is_reported_with_colliding_entry(db_session, school):
    teacher, _, _, _, _, _, entry = school
    conflict = ConflictChecker(db_session).check_faculty_conflict(teacher.id, Weekday.monday, "9:30-10:30")

    assert conflict is not None
    assert conflict.conflict_type == "teacher"
    assert conflict.entry_id == entry.id
    assert conflict.message == (
        "Teacher already has Mathematics scheduled at Monday 9:00-10:00. "
        "Cannot assign another subject at overlapping time 9:30-10:30 on the same day."
    )


def test_adjacent_slot_and_other_day_are_free(db_session, school):
    teacher = school[0]
    checker = ConflictChecker(db_session)

    assert checker.check_faculty_conflict(teacher.id, Weekday.monday, "10:00-11:00") is None
    assert checker.check_faculty_conflict(teacher.id, Weekday.monday, "8:00-9:00") is None
    assert checker.check_faculty_conflict(teacher.id, Weekday.tuesday, "9:00-10:00") is None


def test_section_overlap_with_different_teacher(db_session, school):
    _, other_teacher, _, _, rizal, bonifacio, _ = school
    checker = ConflictChecker(db_session)

    conflict = checker.check_section_conflict(rizal.id, Weekday.monday, "9:15-9:45", other_teacher.id)
    assert conflict is not None
    assert conflict.conflict_type == "section"
    assert conflict.message.startswith("Section Grade 7 - Rizal already has Maria Santos teaching Mathematics")
    assert checker.check_section_conflict(bonifacio.id, Weekday.monday, "9:15-9:45", other_teacher.id) is None


def test_same_teacher_is_not_a_section_conflict(db_session, school):
    teacher, _, _, _, rizal, _, _ = school
    assert ConflictChecker(db_session).check_section_conflict(rizal.id, Weekday.monday, "9:00-10:00", teacher.id) is None


def test_excluded_entry_is_ignored(db_session, school):
    teacher, _, _, _, _, _, entry = school
    checker = ConflictChecker(db_session)
    assert checker.check_faculty_conflict(teacher.id, Weekday.monday, "9:30-10:30", exclude_entry_id=entry.id) is None


def test_pending_entries_are_considered(db_session, school):
    teacher, _, _, science, _, bonifacio, _ = school
    pending = ScheduleEntry(
        faculty_id=teacher.id,
        subject_id=science.id,
        class_section_id=bonifacio.id,
        day=Weekday.wednesday,
        time="13:00-14:00",
        start_minute=780,
        end_minute=840,
        duration=1,
    )
    checker = ConflictChecker(db_session)

    assert checker.check_faculty_conflict(teacher.id, Weekday.wednesday, "13:30-14:30") is None
    conflict = checker.check_faculty_conflict(teacher.id, Weekday.wednesday, "13:30-14:30", pending=[pending])
    assert conflict is not None
    assert conflict.time == "13:00-14:00"


def test_ensure_no_conflict_checks_faculty_first(db_session, school):
    teacher, _, _, _, rizal, _, _ = school
    with pytest.raises(ConflictError) as exc_info:
        ConflictChecker(db_session).ensure_no_conflict(
            faculty_id=teacher.id, section_id=rizal.id, day=Weekday.monday, time="9:00-10:00"
        )
    assert exc_info.value.status_code == 409
    assert exc_info.value.conflict_type == "teacher"
    assert exc_info.value.details["subject"] == "Mathematics"
    assert exc_info.value.details["day"] == "Monday"


def test_find_conflicts_returns_both_sides(db_session, school):
    teacher, other_teacher, math, science, rizal, bonifacio, _ = school
    # other_teacher is busy in Bonifacio and the proposed Rizal slot is already staffed
    db_entry = ScheduleEntry(
        faculty_id=other_teacher.id,
        subject_id=science.id,
        class_section_id=bonifacio.id,
        day=Weekday.monday,
        time="9:00-10:00",
        start_minute=540,
        end_minute=600,
        duration=1,
    )
    db_session.add(db_entry)
    db_session.commit()

    conflicts = ConflictChecker(db_session).find_conflicts(
        faculty_id=other_teacher.id, section_id=rizal.id, day=Weekday.monday, time="9:30-10:00"
    )
    assert [conflict.conflict_type for conflict in conflicts] == ["teacher", "section"]


def test_malformed_stored_time_surfaces_as_storage_error(db_session, school):
    teacher, _, math, _, _, bonifacio, _ = school
    broken = ScheduleEntry(
        faculty_id=teacher.id,
        subject_id=math.id,
        class_section_id=bonifacio.id,
        day=Weekday.friday,
        time="morning",
        duration=1,
    )
    db_session.add(broken)
    db_session.commit()

    with pytest.raises(StorageError) as exc_info:
        ConflictChecker(db_session).check_faculty_conflict(teacher.id, Weekday.friday, "9:00-10:00")
    assert exc_info.value.message == "Unexpected storage error. Please try again later."
