"""Authentication: signup, login, signed bearer tokens and the view guard."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from . import db as persistence
from .config import DEFAULT_TOKEN_TTL
from .db import to_iso
from .errors import AuthError, ConflictError, NotFoundError, ValidationError
from .log import get_logger
from .models import User, db

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
TOKEN_SALT = "finance-tracker-auth"
INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly into every service call."""

    user_id: int
    email: str


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_token(user_id: int, email: str) -> str:
    return _serializer().dumps({"id": user_id, "email": email})


def authenticate(token: Optional[str]) -> Principal:
    if not token:
        raise AuthError("Access token required")
    max_age = current_app.config.get("TOKEN_TTL", DEFAULT_TOKEN_TTL)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise AuthError("Token expired") from exc
    except BadSignature as exc:
        raise AuthError("Invalid token") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("id"), int):
        raise AuthError("Invalid token")
    return Principal(user_id=payload["id"], email=str(payload.get("email", "")))


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        g.principal = authenticate(_bearer_token())
        return view(principal=g.principal, **kwargs)

    return wrapped_view


def public_user(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email}


def _session_payload(user: User) -> Dict[str, Any]:
    return {"token": issue_token(user.id, user.email), "user": public_user(user)}


def signup(name: Any, email: Any, password: Any) -> Dict[str, Any]:
    name = name.strip() if isinstance(name, str) else ""
    email = normalize_email(email) if isinstance(email, str) else ""
    password = password if isinstance(password, str) else ""
    if not name or not email or not password:
        raise ValidationError("Please provide name, email, and password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if User.query.filter_by(email=email).first() is not None:
        raise ConflictError("User with this email already exists")

    user = User(name=name, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    try:
        persistence.commit()
    except ConflictError as exc:
        raise ConflictError("User with this email already exists") from exc
    log.info("user_signed_up", user_id=user.id)
    return _session_payload(user)


def login(email: Any, password: Any) -> Dict[str, Any]:
    if not isinstance(email, str) or not email.strip() or not isinstance(password, str) or not password:
        raise ValidationError("Please provide email and password")
    user = User.query.filter_by(email=normalize_email(email)).first()
    if user is None or not check_password_hash(user.password_hash, password):
        log.info("login_failed")
        raise AuthError(INVALID_CREDENTIALS)
    log.info("user_logged_in", user_id=user.id)
    return _session_payload(user)


def get_profile(principal: Principal) -> Dict[str, Any]:
    user = db.session.get(User, principal.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "createdAt": to_iso(user.created_at),
    }
