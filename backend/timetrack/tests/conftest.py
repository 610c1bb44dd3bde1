"""
Pytest configuration and fixtures for backend testing.

Provides an isolated in-memory database per test, a FastAPI test client
bound to it, bearer tokens, and a multi-tenant data setup: one organization
with an admin, a manager and two employees, plus a second organization the
first one must never see.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import date
from typing import Dict, Generator
from uuid import UUID
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from timetrack.api.main import app
from timetrack.auth.jwt_handler import JWTHandler
from timetrack.database.connection import build_engine, create_tables, drop_tables, get_db
from timetrack.database.models import (
    Organization, OrganizationMember, Project, Role, User, utcnow
)

WEEK = date(2026, 1, 5)


@pytest.fixture(scope="function")
def engine():
    """Create a fresh in-memory database for each test."""
    test_engine = build_engine("sqlite://")
    create_tables(bind=test_engine)
    yield test_engine
    drop_tables(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """Create FastAPI test client with database dependency override."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db: Session, email: str, first_name: str = "Test", last_name: str = "User") -> User:
    user = User(email=email, first_name=first_name, last_name=last_name, active=True, created_at=utcnow())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_membership(db: Session, organization: Organization, user: User, role: Role,
                   active: bool = True) -> OrganizationMember:
    now = utcnow()
    member = OrganizationMember(
        organization_id=organization.id,
        user_id=user.id,
        role=role,
        active=active,
        created_at=now,
        updated_at=now,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def make_organization(db: Session, name: str) -> Organization:
    now = utcnow()
    organization = Organization(name=name, active=True, created_at=now, updated_at=now)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def make_project(db: Session, organization: Organization, name: str, active: bool = True) -> Project:
    now = utcnow()
    project = Project(organization_id=organization.id, name=name, active=active, created_at=now, updated_at=now)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def admin(db_session) -> User:
    return make_user(db_session, "admin@example.com", "Ada", "Admin")


@pytest.fixture
def manager(db_session) -> User:
    return make_user(db_session, "manager@example.com", "Max", "Manager")


@pytest.fixture
def employee(db_session) -> User:
    return make_user(db_session, "employee@example.com", "Eve", "Employee")


@pytest.fixture
def other_employee(db_session) -> User:
    return make_user(db_session, "other@example.com", "Otto", "Other")


@pytest.fixture
def outsider(db_session) -> User:
    """Admin of a different organization, not a member of ours."""
    return make_user(db_session, "outsider@example.com", "Olga", "Outsider")


@pytest.fixture
def organization(db_session, admin, manager, employee, other_employee) -> Organization:
    org = make_organization(db_session, "Acme")
    add_membership(db_session, org, admin, Role.ADMIN)
    add_membership(db_session, org, manager, Role.MANAGER)
    add_membership(db_session, org, employee, Role.EMPLOYEE)
    add_membership(db_session, org, other_employee, Role.EMPLOYEE)
    return org


@pytest.fixture
def other_organization(db_session, outsider) -> Organization:
    org = make_organization(db_session, "Globex")
    add_membership(db_session, org, outsider, Role.ADMIN)
    return org


@pytest.fixture
def project(db_session, organization) -> Project:
    return make_project(db_session, organization, "Website")


@pytest.fixture
def other_project(db_session, other_organization) -> Project:
    return make_project(db_session, other_organization, "Globex Internal")


def auth_headers_for(user_id: UUID, email: str = "") -> Dict[str, str]:
    """Bearer headers with a real signed token for ``user_id``."""
    token = JWTHandler.create_user_token(user_id, email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin) -> Dict[str, str]:
    return auth_headers_for(admin.id, admin.email)


@pytest.fixture
def manager_headers(manager) -> Dict[str, str]:
    return auth_headers_for(manager.id, manager.email)


@pytest.fixture
def employee_headers(employee) -> Dict[str, str]:
    return auth_headers_for(employee.id, employee.email)


@pytest.fixture
def outsider_headers(outsider) -> Dict[str, str]:
    return auth_headers_for(outsider.id, outsider.email)
