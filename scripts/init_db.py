import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.docutrack.models import User
from app.docutrack.rbac import ensure_roles
from scripts._db_utils import script_database_url, script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions, the client/staff/director roles and a director account
    in an idempotent way. Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "director@docutrack.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = script_database_url(database_url)

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        roles = ensure_roles(s)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                first_name="Deputy",
                last_name="Director",
                is_active=True,
            )
            s.add(user)
        if roles["director"] not in user.roles:
            user.roles.append(roles["director"])

    print("Initialized database (seed_only).")
    print(f"Director email: {admin_email}")
    print("Director password: (from ADMIN_PASSWORD)")


def create_tables(*, database_url: str | None = None) -> None:
    """Local/dev shortcut: create every table from the models (prod uses alembic)."""
    from app.docutrack.db import build_engine
    from app.docutrack.models import Base

    engine = build_engine(script_database_url(database_url))
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def main() -> None:
    if "--create-tables" in sys.argv[1:]:
        create_tables(database_url=None)
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
