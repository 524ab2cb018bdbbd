"""Shared fixtures: settings environment, SQLite sessions, API client and an in-memory repository."""

import os

# Settings are read at import time; configure them before anything from app is imported
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("TWILIO_ACCOUNT_SID", None)

import uuid
from decimal import Decimal
from itertools import count
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps.services import get_email_service, get_sms_service
from app.core.db import get_db
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import (
    Base,
    Course,
    CourseStatus,
    EducationalContract,
    Enrollment,
    EnrollmentStatus,
    SimplifiedEnrollment,
    SimplifiedEnrollmentStatus,
    SimplifiedEnrollmentStatusLog,
    User,
    UserRole,
    PortalType,
)
from app.services.email_service import EmailService
from app.services.sms_service import SmsService


# ---- in-memory repository --------------------------------------------------------

class FakeConversionRepository:
    """ConversionRepository kept in dictionaries; enforces the same uniqueness rules as the schema."""

    def __init__(self):
        self.users = {}
        self.courses = {}
        self.simplified = {}
        self.enrollments = {}
        self.contracts = {}
        self.status_logs = []
        self.commits = 0
        self.rollbacks = 0
        self._ids = count(1)

    def _next_id(self):
        return next(self._ids)

    # fixture helpers

    def add_course(self, name="Bacharelado em Administração", code="ADM01", contract_type=None):
        course = Course(
            id=self._next_id(), code=code, name=name,
            status=CourseStatus.PUBLISHED.value, contract_type=contract_type,
        )
        self.courses[course.id] = course
        return course

    def add_simplified(self, course_id, email="ana.souza@example.com", cpf="123.456.789-00",
                       status=SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value,
                       full_price=Decimal("18000.00"), discount_price=None, **fields):
        fields.setdefault("created_by_id", 1)
        enrollment = SimplifiedEnrollment(
            id=self._next_id(),
            uuid=str(uuid.uuid4()),
            course_id=course_id,
            student_name="Ana Clara Souza",
            student_email=email,
            student_cpf=cpf,
            full_price=full_price,
            discount_price=discount_price,
            status=status,
            payment_gateway="asaas",
            **fields,
        )
        self.simplified[enrollment.id] = enrollment
        return enrollment

    # ConversionRepository

    def get_simplified_enrollment(self, enrollment_id, for_update=False):
        return self.simplified.get(enrollment_id)

    def get_simplified_enrollment_by_reference(self, reference):
        for enrollment in self.simplified.values():
            if enrollment.uuid == reference:
                return enrollment
        for enrollment in self.simplified.values():
            if enrollment.payment_external_id == reference:
                return enrollment
        return None

    def list_simplified_enrollments(self, status=None, limit=50, offset=0):
        rows = [e for e in self.simplified.values() if status is None or e.status == status]
        return rows[offset:offset + limit]

    def list_simplified_enrollments_by_status(self, status):
        return [e for e in self.simplified.values() if e.status == status]

    def list_incomplete_simplified_enrollments(self):
        return [
            e for e in self.simplified.values()
            if e.converted_enrollment_id is None and (
                e.status == SimplifiedEnrollmentStatus.CONVERTED.value
                or (e.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value and e.student_id)
            )
        ]

    def create_simplified_enrollment(self, **fields):
        enrollment = SimplifiedEnrollment(id=self._next_id(), uuid=str(uuid.uuid4()), **fields)
        self.simplified[enrollment.id] = enrollment
        return enrollment

    def add_status_log(self, enrollment, old_status, new_status, reason, created_by_id=None, gateway_data=None):
        entry = SimplifiedEnrollmentStatusLog(
            id=self._next_id(),
            simplified_enrollment_id=enrollment.id,
            old_status=old_status,
            new_status=new_status,
            reason=reason,
            created_by_id=created_by_id,
            gateway_data=gateway_data,
        )
        self.status_logs.append(entry)
        return entry

    def list_status_logs(self, enrollment_id):
        return [log for log in self.status_logs if log.simplified_enrollment_id == enrollment_id]

    def set_simplified_enrollment_status(self, enrollment, new_status, reason, created_by_id=None, gateway_data=None):
        old_status = enrollment.status
        enrollment.status = new_status
        return self.add_status_log(enrollment, old_status, new_status, reason, created_by_id, gateway_data)

    def link_student_account(self, enrollment, user):
        enrollment.student_id = user.id

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_username(self, username):
        for user in self.users.values():
            if user.username == username or user.email == username:
                return user
        return None

    def create_user(self, **fields):
        if self.get_user_by_username(fields["email"]):
            raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))
        user = User(id=self._next_id(), **fields)
        self.users[user.id] = user
        return user

    def list_students(self, search=None, limit=50, offset=0):
        students = [u for u in self.users.values() if u.role == UserRole.STUDENT.value]
        return students[offset:offset + limit]

    def get_course(self, course_id):
        return self.courses.get(course_id)

    def get_enrollment(self, enrollment_id):
        return self.enrollments.get(enrollment_id)

    def convert_to_formal_enrollment(self, simplified, student):
        existing = next(
            (e for e in self.enrollments.values() if e.simplified_enrollment_id == simplified.id),
            None,
        )
        if existing is None:
            existing = Enrollment(
                id=self._next_id(),
                code=f"MAT{simplified.id:06d}",
                simplified_enrollment_id=simplified.id,
                student_id=student.id,
                course_id=simplified.course_id,
                amount=simplified.discount_price or simplified.full_price or 0,
                payment_gateway=simplified.payment_gateway,
                status=EnrollmentStatus.ACTIVE.value,
            )
            self.enrollments[existing.id] = existing
        simplified.student_id = student.id
        simplified.converted_enrollment_id = existing.id
        return existing

    def get_contract_for_reference(self, reference):
        return next((c for c in self.contracts.values() if c.enrollment_reference == reference), None)

    def create_contract(self, **fields):
        if self.get_contract_for_reference(fields["enrollment_reference"]):
            raise IntegrityError("INSERT INTO educational_contracts", {}, Exception("UNIQUE constraint failed"))
        contract = EducationalContract(id=str(uuid.uuid4()), **fields)
        self.contracts[contract.id] = contract
        return contract

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def fake_repo():
    return FakeConversionRepository()


@pytest.fixture
def notifier():
    """Credential notifier double; reports success unless a test says otherwise."""
    mock = Mock(spec=EmailService)
    mock.send_student_credentials_email.return_value = True
    return mock


@pytest.fixture
def sms_notifier():
    mock = Mock(spec=SmsService)
    mock.send_student_credentials_sms.return_value = True
    return mock


# ---- SQLite ----------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def client(db_session, notifier, sms_notifier):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: notifier
    app.dependency_overrides[get_sms_service] = lambda: sms_notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role=UserRole.ADMIN.value, password="Senha@12345"):
    user = User(
        username=email,
        email=email,
        password_hash=hash_password(password),
        full_name=email.split("@")[0].title(),
        role=role,
        portal_type=PortalType.STUDENT.value if role == UserRole.STUDENT.value else PortalType.ADMIN.value,
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "admin@edunexia.com.br", role=UserRole.ADMIN.value)


@pytest.fixture
def manager_user(db_session):
    return make_user(db_session, "gestor@edunexia.com.br", role=UserRole.MANAGER.value)


@pytest.fixture
def student_user(db_session):
    return make_user(db_session, "aluno@edunexia.com.br", role=UserRole.STUDENT.value)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def course(db_session):
    course = Course(
        code="MBA01",
        name="MBA em Gestão",
        status=CourseStatus.PUBLISHED.value,
        price=Decimal("18000.00"),
    )
    db_session.add(course)
    db_session.commit()
    return course


@pytest.fixture
def make_simplified(db_session):
    def _make(course_id, email="ana.souza@example.com", status=SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value,
              cpf="123.456.789-00", **fields):
        enrollment = SimplifiedEnrollment(
            course_id=course_id,
            student_name="Ana Clara Souza",
            student_email=email,
            student_cpf=cpf,
            full_price=Decimal("18000.00"),
            status=status,
            **fields,
        )
        db_session.add(enrollment)
        db_session.commit()
        return enrollment
    return _make


@pytest.fixture
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture
def student_headers(student_user):
    return auth_headers(student_user)
