import os
from pathlib import Path
import tempfile

# The app engine is built at import time; point it at a throwaway file before importing hrms.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+pysqlite:///{Path(tempfile.mkdtemp(prefix='hrms-tests-')) / 'app.db'}",
)

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hrms.api.deps import get_db  # noqa: E402
from hrms.db.base import Base  # noqa: E402
from hrms.main import app  # noqa: E402
from hrms.models.academics import ClassSection, Subject  # noqa: E402
from hrms.models.faculty import EmploymentStatus, EmploymentType, Faculty  # noqa: E402
from hrms.models.leave_request import LeaveRequest, LeaveStatus, LeaveType  # noqa: E402
from hrms.models.schedule import ScheduleEntry, Weekday  # noqa: E402
from hrms.models.user import User  # noqa: E402
from hrms.services import time_interval  # noqa: E402
from hrms.services.rate_limit import clear_rate_limiter  # noqa: E402
from hrms.services.schedule_store import clear_slot_locks  # noqa: E402


class Seeder:
    """Writes fixture rows directly, bypassing the assignment service."""

    def __init__(self, db) -> None:
        self.db = db
        self._employee_seq = 0

    def faculty(
        self,
        first_name: str,
        last_name: str,
        *,
        email: str | None = None,
        employee_id: str | None = None,
        employment_type: EmploymentType = EmploymentType.full_time,
        employment_status: EmploymentStatus = EmploymentStatus.regular,
        is_deleted: bool = False,
        position: str | None = "Teacher",
    ) -> Faculty:
        self._employee_seq += 1
        local = ".".join(part.lower() for part in f"{first_name} {last_name}".split())
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"{local}.{self._employee_seq}@school.test",
        )
        self.db.add(user)
        self.db.flush()
        faculty = Faculty(
            user_id=user.id,
            employee_id=employee_id or f"EMP-{self._employee_seq:04d}",
            position=position,
            employment_type=employment_type,
            employment_status=employment_status,
            is_deleted=is_deleted,
        )
        self.db.add(faculty)
        self.db.commit()
        return faculty

    def subject(self, name: str, code: str | None = None) -> Subject:
        subject = Subject(name=name, code=code)
        self.db.add(subject)
        self.db.commit()
        return subject

    def section(self, name: str, grade_level: str | None = "Grade 7") -> ClassSection:
        section = ClassSection(name=name, grade_level=grade_level)
        self.db.add(section)
        self.db.commit()
        return section

    def entry(
        self,
        faculty: Faculty,
        subject: Subject,
        section: ClassSection,
        day: Weekday,
        time: str,
        duration: float = 1,
    ) -> ScheduleEntry:
        interval = time_interval.parse(time)
        entry = ScheduleEntry(
            faculty_id=faculty.id,
            subject_id=subject.id,
            class_section_id=section.id,
            day=day,
            time=time_interval.format_range(interval),
            start_minute=interval.start_minutes,
            end_minute=interval.end_minutes,
            duration=duration,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def external_entry(
        self,
        faculty: Faculty,
        subject: Subject,
        section: ClassSection,
        day: Weekday,
        time: str,
        duration: float = 1,
    ) -> ScheduleEntry:
        """A row as an outside tool writes it: raw time text, no normalized minutes."""
        entry = ScheduleEntry(
            faculty_id=faculty.id,
            subject_id=subject.id,
            class_section_id=section.id,
            day=day,
            time=time,
            duration=duration,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def leave(
        self,
        faculty: Faculty,
        start: date,
        end: date,
        status: LeaveStatus = LeaveStatus.approved,
        leave_type: LeaveType = LeaveType.sick,
    ):
        leave = LeaveRequest(
            faculty_id=faculty.id,
            leave_type=leave_type,
            status=status,
            start_date=start,
            end_date=end,
        )
        self.db.add(leave)
        self.db.commit()
        return leave


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    clear_slot_locks()
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def seed(db_session):
    return Seeder(db_session)


@pytest.fixture()
def make_seeder():
    return Seeder


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file database, for tests that need one connection per thread."""
    clear_slot_locks()
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'schedules.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
    clear_slot_locks()


@pytest.fixture()
def client(session_factory):
    clear_rate_limiter()
    clear_slot_locks()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_rate_limiter()
