import pytest
from werkzeug.security import generate_password_hash

from app.docutrack import create_app
from app.docutrack.auth import _login_attempts
from app.docutrack.db import session_scope
from app.docutrack.models import Base, Role, User
from app.docutrack.rbac import ensure_roles
from app.docutrack.security import issue_token

ROLE_USERS = {
    "client": "client@example.com",
    "staff": "staff@example.com",
    "director": "director@example.com",
}


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "ENFORCE_STATUS_TRANSITIONS",
        "DEFAULT_DEADLINE_DAYS",
        "DEADLINE_WARNING_DAYS",
        "DEADLINE_REMINDER_DAYS",
        "TOKEN_MAX_AGE_SECONDS",
        "ALLOW_DIRECTOR_SIGNUP",
    ):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = ensure_roles(s)
        for role_key, email in ROLE_USERS.items():
            u = User(
                email=email,
                password_hash=generate_password_hash("pw"),
                first_name=role_key.title(),
                last_name="Tester",
                is_active=True,
            )
            u.roles.append(roles[role_key])
            s.add(u)

    _login_attempts.clear()
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth(app):
    """auth("staff") -> Authorization header for that role's seeded user."""

    def _headers(role_key: str) -> dict[str, str]:
        with session_scope(app) as s:
            uid = s.query(User).filter(User.email == ROLE_USERS[role_key]).one().id
        with app.app_context():
            return {"Authorization": f"Bearer {issue_token(uid)}"}

    return _headers


@pytest.fixture()
def add_user(app):
    """add_user("staff", "other@example.com") seeds another user and returns their Authorization header."""

    def _add(role_key: str, email: str) -> dict[str, str]:
        with session_scope(app) as s:
            u = User(
                email=email,
                password_hash=generate_password_hash("pw"),
                first_name=role_key.title(),
                last_name="Extra",
                is_active=True,
            )
            u.roles.append(s.query(Role).filter(Role.key == role_key).one())
            s.add(u)
            s.flush()
            uid = u.id
        with app.app_context():
            return {"Authorization": f"Bearer {issue_token(uid)}"}

    return _add
