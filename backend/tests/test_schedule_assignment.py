import random

import pytest

from hrms.core.exceptions import ConflictError, NotFoundError, SlotTakenError
from hrms.models.activity_log import ActivityLog, ScheduleAction
from hrms.models.schedule import ScheduleEntry, Weekday
from hrms.schemas.schedule import ScheduleRequest, ScheduleUpdate
from hrms.services import schedule_store, time_interval
from hrms.services.assignment import CreateStatus, ScheduleAssignmentService
from hrms.services.conflict_service import ConflictChecker


def _request(faculty, subject, section, *, time, day=None, days=None, duration=1):
    payload = {
        "facultyRef": faculty if isinstance(faculty, dict) else {"id": faculty.id},
        "subjectRef": {"id": subject.id},
        "sectionRef": {"id": section.id},
        "time": time,
        "duration": duration,
    }
    if day is not None:
        payload["day"] = day
    if days is not None:
        payload["days"] = days
    return ScheduleRequest.model_validate(payload)


def test_second_overlapping_create_names_the_first_subject(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    science = seed.subject("Science")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    service = ScheduleAssignmentService(db_session)

    first = service.create(_request(teacher, math, rizal, day="Monday", time="9:00-10:00"))
    assert first.status == CreateStatus.success
    assert len(first.created) == 1

    second = service.create(_request(teacher, science, bonifacio, day="Monday", time="9:30-10:30"))
    assert second.status == CreateStatus.failed
    assert second.created == []
    [error] = second.errors
    assert error.index == 0
    assert error.day == Weekday.monday
    assert error.status_code == 409
    assert "Mathematics" in error.message
    assert "Monday 9:00-10:00" in error.message


def test_multi_day_create_commits_free_days_and_reports_conflicting_ones(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    science = seed.subject("Science")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")

    result = ScheduleAssignmentService(db_session).create(
        _request(teacher, science, bonifacio, days=["Monday", "Tuesday"], time="9:00-10:00")
    )

    assert result.status == CreateStatus.partial
    assert [entry.day for entry in result.created] == [Weekday.tuesday]
    assert [(error.index, error.day) for error in result.errors] == [(0, Weekday.monday)]


def test_batch_resolution_failure_only_affects_its_own_request(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")

    result = ScheduleAssignmentService(db_session).create(
        [
            _request({"fullName": "Nobody Here"}, math, rizal, day="Monday", time="8:00-9:00"),
            _request(teacher, math, rizal, day="Monday", time="9:00-10:00"),
        ]
    )

    assert result.status == CreateStatus.partial
    assert len(result.created) == 1
    [error] = result.errors
    assert error.index == 0
    assert error.day is None
    assert error.message == 'Faculty with name "Nobody Here" not found'


def test_days_in_one_request_see_entries_created_earlier_in_the_call(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")

    result = ScheduleAssignmentService(db_session).create(
        [
            _request(teacher, math, rizal, days=["Monday", "Wednesday"], time="10:00-11:00"),
            _request(teacher, math, bonifacio, days=["Wednesday", "Friday"], time="10:30-11:30"),
        ]
    )

    assert [(entry.class_section_id, entry.day) for entry in result.created] == [
        (rizal.id, Weekday.monday),
        (rizal.id, Weekday.wednesday),
        (bonifacio.id, Weekday.friday),
    ]
    assert [(error.index, error.day) for error in result.errors] == [(1, Weekday.wednesday)]


def test_create_stores_normalized_time_and_audit_row(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")

    result = ScheduleAssignmentService(db_session).create(
        _request(teacher, math, rizal, day="Monday", time="09:00-10:00")
    )

    [entry] = result.created
    assert entry.time == "9:00-10:00"
    assert (entry.start_minute, entry.end_minute) == (540, 600)
    logs = db_session.query(ActivityLog).filter(ActivityLog.schedule_id == entry.id).all()
    assert [log.action for log in logs] == [ScheduleAction.created]


def test_enforced_workload_rejects_over_capacity_days(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    days = list(Weekday)
    for index in range(8):
        section = seed.section(f"Filler {index}")
        seed.entry(teacher, math, section, days[index % 7], f"{7 + index // 7}:00-{8 + index // 7}:00", duration=5)
    service = ScheduleAssignmentService(db_session)

    enforced = service.create(
        _request(teacher, math, rizal, day="Saturday", time="15:00-17:00", duration=2),
        enforce_workload=True,
    )
    assert enforced.status == CreateStatus.failed
    assert enforced.errors[0].message == "Exceeds maximum hours (42/40 hours)"

    advisory = service.create(_request(teacher, math, rizal, day="Saturday", time="15:00-17:00", duration=2))
    assert advisory.status == CreateStatus.success


def test_update_excludes_the_entry_being_edited(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    entry = seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")

    updated = ScheduleAssignmentService(db_session).update(
        entry.id,
        ScheduleUpdate.model_validate(
            {
                "subjectRef": {"id": math.id},
                "sectionRef": {"id": rizal.id},
                "day": "Monday",
                "time": "9:30-10:30",
                "duration": 1,
            }
        ),
    )

    assert updated.id == entry.id
    assert updated.time == "9:30-10:30"
    assert updated.start_minute == 570


def test_update_reassigns_matching_slot_in_place(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    substitute = seed.faculty("Jose", "Reyes")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    target = seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")
    edited = seed.entry(substitute, math, bonifacio, Weekday.monday, "13:00-14:00")

    result = ScheduleAssignmentService(db_session).update(
        edited.id,
        ScheduleUpdate.model_validate(
            {
                "facultyRef": {"id": substitute.id},
                "subjectRef": {"id": math.id},
                "sectionRef": {"id": rizal.id},
                "day": "Monday",
                "time": "9:00-10:00",
                "duration": 1,
            }
        ),
    )

    assert result.id == target.id
    assert result.faculty_id == substitute.id
    assert db_session.query(ScheduleEntry).count() == 2
    actions = [log.action for log in db_session.query(ActivityLog).filter(ActivityLog.schedule_id == target.id)]
    assert actions == [ScheduleAction.reassigned]


def test_update_conflicting_with_another_entry_raises(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")
    moving = seed.entry(teacher, math, bonifacio, Weekday.monday, "11:00-12:00")

    with pytest.raises(ConflictError, match="Monday 9:00-10:00"):
        ScheduleAssignmentService(db_session).update(
            moving.id,
            ScheduleUpdate.model_validate(
                {
                    "subjectRef": {"id": math.id},
                    "sectionRef": {"id": bonifacio.id},
                    "day": "Monday",
                    "time": "9:30-10:30",
                    "duration": 1,
                }
            ),
        )


def test_update_unknown_entry(db_session, seed):
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    payload = ScheduleUpdate.model_validate(
        {"subjectRef": {"id": math.id}, "sectionRef": {"id": rizal.id}, "day": "Monday", "time": "9:00-10:00", "duration": 1}
    )
    with pytest.raises(NotFoundError, match="Schedule 77 not found"):
        ScheduleAssignmentService(db_session).update(77, payload)


def _random_slot(rng):
    start = rng.randrange(7 * 60, 17 * 60, 15)
    length = rng.choice([30, 45, 60, 90, 120])
    return f"{start // 60}:{start % 60:02d}-{(start + length) // 60}:{(start + length) % 60:02d}"


def _pairwise_disjoint(entries):
    by_day = {}
    for entry in entries:
        by_day.setdefault(entry.day, []).append(time_interval.parse(entry.time))
    for intervals in by_day.values():
        for i, left in enumerate(intervals):
            for right in intervals[i + 1:]:
                if time_interval.overlaps(left, right):
                    return False
    return True


def test_accepted_faculty_entries_never_overlap(db_session, seed):
    rng = random.Random(7)
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    sections = [seed.section(f"Section {index}") for index in range(40)]
    service = ScheduleAssignmentService(db_session)
    days = [Weekday.monday, Weekday.tuesday]

    for section in sections:
        service.create(_request(teacher, math, section, day=rng.choice(days).value, time=_random_slot(rng)))

    entries = db_session.query(ScheduleEntry).filter(ScheduleEntry.faculty_id == teacher.id).all()
    assert entries
    assert _pairwise_disjoint(entries)


def test_accepted_section_entries_never_overlap_across_teachers(db_session, seed):
    rng = random.Random(11)
    teachers = [seed.faculty(f"Teacher{index}", "Demo") for index in range(40)]
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    service = ScheduleAssignmentService(db_session)

    for teacher in teachers:
        service.create(_request(teacher, math, rizal, day="Monday", time=_random_slot(rng)))

    entries = db_session.query(ScheduleEntry).filter(ScheduleEntry.class_section_id == rizal.id).all()
    assert len({entry.faculty_id for entry in entries}) == len(entries)
    assert _pairwise_disjoint(entries)


def test_store_revalidates_when_the_service_check_was_stale(db_session, seed, monkeypatch):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")
    service = ScheduleAssignmentService(db_session)
    monkeypatch.setattr(service.checker, "check_faculty_conflict", lambda *args, **kwargs: None)
    monkeypatch.setattr(service.checker, "check_section_conflict", lambda *args, **kwargs: None)

    result = service.create(_request(teacher, math, bonifacio, day="Monday", time="9:30-10:30"))

    assert result.status == CreateStatus.failed
    assert result.errors[0].status_code == 409
    assert "Monday 9:00-10:00" in result.errors[0].message
    assert db_session.query(ScheduleEntry).count() == 1


def test_unique_constraint_is_reported_as_slot_taken(db_session, seed, monkeypatch):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")
    monkeypatch.setattr(schedule_store, "_revalidate", lambda db, **kwargs: None)

    with pytest.raises(SlotTakenError, match="This time slot was just taken"):
        schedule_store.insert_entry(
            db_session,
            faculty_id=teacher.id,
            subject_id=math.id,
            section_id=bonifacio.id,
            day=Weekday.monday,
            time="9:00-9:30",
            duration=0.5,
        )
    assert db_session.query(ScheduleEntry).count() == 1


def test_update_finds_zero_padded_external_slot(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    substitute = seed.faculty("Jose", "Reyes")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    external = seed.external_entry(substitute, math, rizal, Weekday.monday, "09:00-10:00")
    edited = seed.entry(teacher, math, bonifacio, Weekday.monday, "13:00-14:00")

    result = ScheduleAssignmentService(db_session).update(
        edited.id,
        ScheduleUpdate.model_validate(
            {
                "subjectRef": {"id": math.id},
                "sectionRef": {"id": rizal.id},
                "day": "Monday",
                "time": "9:00-10:00",
                "duration": 1,
            }
        ),
    )

    assert result.id == external.id
    assert result.faculty_id == teacher.id
    assert (result.time, result.start_minute, result.end_minute) == ("9:00-10:00", 540, 600)
    assert db_session.query(ScheduleEntry).count() == 2


def test_restore_original_teacher_hands_the_slot_back(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    substitute = seed.faculty("Jose", "Reyes")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    covered = seed.entry(substitute, math, rizal, Weekday.monday, "9:00-10:00")

    outcome = ScheduleAssignmentService(db_session).restore_original_teacher(covered.id, teacher.id)

    assert outcome.restored
    assert outcome.sync is None
    assert outcome.entry.id == covered.id
    assert outcome.entry.faculty_id == teacher.id
    assert outcome.message == "Original teacher restored successfully"
    [log] = db_session.query(ActivityLog).filter(ActivityLog.schedule_id == covered.id).all()
    assert log.action == ScheduleAction.restored
    assert log.details["previous_faculty_id"] == substitute.id


def test_restore_is_a_no_op_when_the_teacher_already_holds_the_slot(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    entry = seed.entry(teacher, math, rizal, Weekday.monday, "9:00-10:00")

    outcome = ScheduleAssignmentService(db_session).restore_original_teacher(entry.id, teacher.id)

    assert not outcome.reassigned
    assert outcome.entry.faculty_id == teacher.id
    assert db_session.query(ActivityLog).count() == 0


def test_restore_checks_the_original_teachers_other_classes(db_session, seed):
    teacher = seed.faculty("Maria", "Santos")
    substitute = seed.faculty("Jose", "Reyes")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    bonifacio = seed.section("Grade 7 - Bonifacio")
    covered = seed.entry(substitute, math, rizal, Weekday.monday, "9:00-10:00")
    seed.entry(teacher, math, bonifacio, Weekday.monday, "9:30-10:30")
    service = ScheduleAssignmentService(db_session)

    with pytest.raises(ConflictError, match="Monday 9:30-10:30"):
        service.restore_original_teacher(covered.id, teacher.id)
    with pytest.raises(NotFoundError, match="Schedule not found"):
        service.restore_original_teacher(4040, teacher.id)
    with pytest.raises(NotFoundError):
        service.restore_original_teacher(covered.id, 4040)


def test_writes_go_through_the_checkers_conflict_guard(db_session, seed):
    class RecordingChecker(ConflictChecker):
        calls = []

        def ensure_no_conflict(self, **kwargs):
            self.calls.append((kwargs["day"], kwargs["time"], kwargs.get("exclude_entry_id")))
            return super().ensure_no_conflict(**kwargs)

    teacher = seed.faculty("Maria", "Santos")
    math = seed.subject("Mathematics")
    rizal = seed.section("Grade 7 - Rizal")
    service = ScheduleAssignmentService(db_session, checker=RecordingChecker(db_session))

    [entry] = service.create(_request(teacher, math, rizal, day="Monday", time="9:00-10:00")).created
    service.restore_original_teacher(entry.id, seed.faculty("Jose", "Reyes").id)

    assert RecordingChecker.calls == [
        (Weekday.monday, "9:00-10:00", None),
        (Weekday.monday, "9:00-10:00", entry.id),
    ]
