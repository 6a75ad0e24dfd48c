from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from app.docutrack.db import build_engine


def script_database_url(database_url: str | None = None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or "sqlite:///docutrack.db").strip()


@contextmanager
def script_session(db_url: str):
    """Standalone session for scripts (no Flask app); commits on success."""
    engine = build_engine(db_url)
    s: Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
