"""Persistence helpers: schema creation, commits and value conversion."""

from __future__ import annotations

import datetime as dt
import sqlite3
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .errors import ConflictError, ForeignKeyError, ValidationError
from .log import get_logger
from .models import db, utcnow

log = get_logger(__name__)

# NUMERIC(10, 2) holds at most eight integer digits.
MAX_AMOUNT = Decimal("1e8")


class _Unset:
    """Marks a patch field the caller did not supply."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def apply_patch(row: Any, patch: Any) -> None:
    """Copy every supplied patch field onto the row and touch ``updated_at``."""
    for name, value in vars(patch).items():
        if value is not UNSET:
            setattr(row, name, value)
    row.updated_at = utcnow()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # SQLite ignores ON DELETE clauses unless this is set per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db() -> None:
    db.create_all()


def commit() -> None:
    """Commit the session, turning constraint failures into API errors."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise _translate_integrity_error(exc) from exc


def _translate_integrity_error(exc: IntegrityError) -> Exception:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    text = str(orig).lower()
    if code == "23505" or "unique" in text:
        log.info("integrity_conflict", detail=str(orig))
        return ConflictError()
    if code == "23503" or "foreign key" in text:
        log.info("integrity_foreign_key", detail=str(orig))
        return ForeignKeyError()
    log.info("integrity_invalid", detail=str(orig))
    return ValidationError()


def to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    """Render a naive-UTC timestamp as ``2024-01-01T12:00:00.000Z``."""
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_datetime(value: Any) -> dt.datetime:
    """Parse an ISO-8601 date or timestamp into naive UTC."""
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, dt.date):
        parsed = dt.datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value}") from exc
    else:
        raise ValidationError(f"Invalid date: {value!r}")
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
        except OverflowError as exc:
            raise ValidationError(f"Invalid date: {value}") from exc
    return parsed


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        number = Decimal(str(value).strip())
        if not number.is_finite():
            raise InvalidOperation(value)
        number = number.quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if abs(number) >= MAX_AMOUNT:
        raise ValidationError(f"{field} must be less than {MAX_AMOUNT:,.0f}")
    return number


def to_float(value: Any) -> float:
    return float(value) if value is not None else 0.0
