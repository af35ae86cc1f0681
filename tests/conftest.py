"""
Shared pytest fixtures for the DocFlow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - project / other_project: Pre-created Project entities
    - admin, leader, designer, client_user, reader: one persisted User per role
    - auth_headers: factory → Authorization header for a user
    - make_user / make_document: factories for in-memory (unsaved) objects
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from docflow import create_app
from docflow.models import db as _db
from docflow.models.auth import User
from docflow.models.document import (
    INITIAL_VERSION_LABELS,
    Document,
    DocumentType,
    Qualification,
    VersionKind,
    WorkflowStatus,
)
from docflow.models.project import Project
from docflow.services.document_lifecycle import append_version
from docflow.services.jwt_service import generate_access_token

# Fixed clock for deterministic version timestamps
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Persisted entities ───────────────────────────────────────────────────


def _make_project(code: str) -> Project:
    p = Project(
        code=code,
        name=f"Project {code}",
        wbs=f"WBS-{code}",
        site="Substation A",
        direct_client="Transmission Co.",
        final_client="Grid Operator",
    )
    _db.session.add(p)
    _db.session.flush()
    return p


def _persist_user(email: str, name: str, roles: list[str], project_id=None) -> User:
    u = User(email=email, name=name, roles=roles, project_id=project_id)
    _db.session.add(u)
    _db.session.flush()
    return u


@pytest.fixture()
def project():
    p = _make_project("XINGU-500")
    _db.session.commit()
    return p


@pytest.fixture()
def other_project():
    p = _make_project("LT-NORTH")
    _db.session.commit()
    return p


@pytest.fixture()
def admin():
    u = _persist_user("admin@test.local", "Admin User", ["admin"])
    _db.session.commit()
    return u


@pytest.fixture()
def leader():
    u = _persist_user("leader@test.local", "Lea Leader", ["tech_leader"])
    _db.session.commit()
    return u


@pytest.fixture()
def designer():
    u = _persist_user("designer@test.local", "Dan Designer", ["designer"])
    _db.session.commit()
    return u


@pytest.fixture()
def client_user():
    u = _persist_user("client@client.local", "Cleo Client", ["client"])
    _db.session.commit()
    return u


@pytest.fixture()
def reader():
    u = _persist_user("reader@test.local", "Rex Reader", ["reader"])
    _db.session.commit()
    return u


@pytest.fixture()
def auth_headers():
    """Return a function building the Bearer header for a user."""
    def _headers(user):
        token = generate_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ── In-memory factories (pure core tests) ────────────────────────────────


@pytest.fixture()
def make_user():
    """Build an unsaved User holding ``roles``."""
    counter = {"n": 100}

    def _make(*roles, name=None, project_id=None):
        counter["n"] += 1
        return User(
            id=counter["n"],
            email=f"user{counter['n']}@test.local",
            name=name or f"User {counter['n']}",
            roles=[str(getattr(r, "value", r)) for r in roles],
            project_id=project_id,
        )
    return _make


@pytest.fixture()
def make_document():
    """Build an unsaved Document in an arbitrary state with one creation entry.

    Keyword args override any column; ``status`` / ``qualification`` /
    ``version`` are shortcuts for the current_* columns.
    """
    counter = {"n": 0}

    def _make(status=WorkflowStatus.DRAFT, qualification=Qualification.NONE,
              version=None, type=DocumentType.TECHNICAL, project_id=1, **overrides):
        counter["n"] += 1
        doc_type = DocumentType(type)
        fields = dict(
            id=str(uuid.uuid4()),
            project_id=project_id,
            code=f"GE-VE-EL-{counter['n']:03d}",
            title=f"Drawing {counter['n']}",
            type=doc_type.value,
            discipline="Electrical - EL",
            nature="Functional / Logic Diagram - DFL",
            issuer="Internal Engineering",
            current_version=version or INITIAL_VERSION_LABELS[doc_type],
            current_status=WorkflowStatus(status).value,
            current_qualification=Qualification(qualification).value,
            is_locked=WorkflowStatus(status) == WorkflowStatus.ANALYSIS_CLIENT,
            last_modified=T0,
            created_at=T0,
        )
        fields.update(overrides)
        doc = Document(**fields)
        append_version(
            doc,
            kind=VersionKind.CREATION,
            actor_name="Seed",
            actor_role="designer",
            comments="Document created.",
            now=T0,
        )
        return doc
    return _make


@pytest.fixture()
def later():
    """Return a function producing timestamps after T0."""
    def _later(minutes=1):
        return T0 + timedelta(minutes=minutes)
    return _later
