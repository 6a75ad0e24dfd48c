import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    token_max_age_seconds: int
    default_deadline_days: int
    deadline_warning_days: int
    deadline_reminder_days: int
    enforce_status_transitions: bool
    allow_director_signup: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name).lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///docutrack.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "us-east-1"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        token_max_age_seconds=_getenv_int("TOKEN_MAX_AGE_SECONDS", 8 * 60 * 60),
        default_deadline_days=_getenv_int("DEFAULT_DEADLINE_DAYS", 7),
        deadline_warning_days=_getenv_int("DEADLINE_WARNING_DAYS", 3),
        deadline_reminder_days=_getenv_int("DEADLINE_REMINDER_DAYS", 1),
        enforce_status_transitions=_getenv_bool("ENFORCE_STATUS_TRANSITIONS", True),
        allow_director_signup=_getenv_bool("ALLOW_DIRECTOR_SIGNUP", False),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # bearer tokens
        "TOKEN_MAX_AGE_SECONDS": s.token_max_age_seconds,
        # document lifecycle
        "DEFAULT_DEADLINE_DAYS": s.default_deadline_days,
        "DEADLINE_WARNING_DAYS": s.deadline_warning_days,
        "DEADLINE_REMINDER_DAYS": s.deadline_reminder_days,
        "ENFORCE_STATUS_TRANSITIONS": s.enforce_status_transitions,
        # directors are seeded by scripts/init_db.py unless this is on
        "ALLOW_DIRECTOR_SIGNUP": s.allow_director_signup,
        # file upload limits (25MB)
        "MAX_CONTENT_LENGTH": 25 * 1024 * 1024,
    }
