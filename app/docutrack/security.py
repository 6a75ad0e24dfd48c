from flask import Request, current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

TOKEN_SALT = "docutrack.auth"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user_id: int) -> str:
    """Signed, timestamped bearer token carrying the user id."""
    return _serializer().dumps({"uid": user_id})


def verify_token(token: str, max_age: int | None = None) -> int | None:
    """Return the user id for a valid, unexpired token, else None."""
    if max_age is None:
        max_age = int(current_app.config.get("TOKEN_MAX_AGE_SECONDS") or 0) or None
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        return None
    uid = payload.get("uid") if isinstance(payload, dict) else None
    return uid if isinstance(uid, int) else None


def bearer_token(req: Request) -> str | None:
    header = (req.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
