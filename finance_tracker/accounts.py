"""Account ledger: CRUD over a user's accounts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from . import db as persistence
from .auth import Principal
from .db import UNSET, apply_patch, to_decimal, to_float, to_iso
from .errors import NotFoundError, ValidationError
from .log import get_logger
from .models import ACCOUNT_TYPES, DEFAULT_ACCOUNT_ICON, Account, Transaction, db

log = get_logger(__name__)

NAME_MAX_LENGTH = 255
ACCOUNT_NUMBER_MAX_LENGTH = 100
ICON_MAX_LENGTH = 50


def _clean_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Name and type are required")
    name = value.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    return name


def _clean_type(value: Any) -> str:
    if not value:
        raise ValidationError("Name and type are required")
    if value not in ACCOUNT_TYPES:
        raise ValidationError(f"Type must be one of: {', '.join(ACCOUNT_TYPES)}")
    return value


def _clean_account_number(value: Any):
    if value is None or value == "":
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError("Account number must be text")
    text = str(value).strip()
    if len(text) > ACCOUNT_NUMBER_MAX_LENGTH:
        raise ValidationError(f"Account number must be at most {ACCOUNT_NUMBER_MAX_LENGTH} characters")
    return text or None


def _clean_icon(value: Any) -> str:
    if value is None or value == "":
        return DEFAULT_ACCOUNT_ICON
    if not isinstance(value, str) or len(value) > ICON_MAX_LENGTH:
        raise ValidationError(f"Icon must be text of at most {ICON_MAX_LENGTH} characters")
    return value


def _clean_initial_balance(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")
    return to_decimal(value, "Initial balance")


@dataclass
class AccountPatch:
    """Fields to change on an account; anything left as UNSET is untouched."""

    name: Any = UNSET
    type: Any = UNSET
    account_number: Any = UNSET
    icon: Any = UNSET
    initial_balance: Any = UNSET

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "AccountPatch":
        patch = cls()
        if "name" in data:
            patch.name = _clean_name(data["name"])
        if "type" in data:
            patch.type = _clean_type(data["type"])
        if "accountNumber" in data:
            patch.account_number = _clean_account_number(data["accountNumber"])
        if "icon" in data:
            patch.icon = _clean_icon(data["icon"])
        if "initialBalance" in data:
            patch.initial_balance = _clean_initial_balance(data["initialBalance"])
        return patch


def serialize_account(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type,
        "accountNumber": account.account_number,
        "icon": account.icon,
        "initialBalance": to_float(account.initial_balance),
        "createdAt": to_iso(account.created_at),
        "updatedAt": to_iso(account.updated_at),
    }


def _owned_account(principal: Principal, account_id: int) -> Account:
    account = Account.query.filter_by(id=account_id, user_id=principal.user_id).first()
    if account is None:
        raise NotFoundError("Account not found")
    return account


def list_accounts(principal: Principal) -> List[Dict[str, Any]]:
    rows = (
        Account.query.filter_by(user_id=principal.user_id)
        .order_by(Account.created_at.desc(), Account.id.desc())
        .all()
    )
    return [serialize_account(row) for row in rows]


def create_account(principal: Principal, data: Mapping[str, Any]) -> Dict[str, Any]:
    if not data.get("name") or not data.get("type"):
        raise ValidationError("Name and type are required")
    account = Account(
        user_id=principal.user_id,
        name=_clean_name(data["name"]),
        type=_clean_type(data["type"]),
        account_number=_clean_account_number(data.get("accountNumber")),
        icon=_clean_icon(data.get("icon")),
        initial_balance=_clean_initial_balance(data.get("initialBalance")),
    )
    db.session.add(account)
    persistence.commit()
    log.info("account_created", user_id=principal.user_id, account_id=account.id)
    return serialize_account(account)


def update_account(
    principal: Principal,
    account_id: int,
    patch: AccountPatch | Mapping[str, Any],
) -> Dict[str, Any]:
    account = _owned_account(principal, account_id)
    if not isinstance(patch, AccountPatch):
        patch = AccountPatch.from_payload(patch)
    apply_patch(account, patch)
    persistence.commit()
    return serialize_account(account)


def delete_account(principal: Principal, account_id: int) -> None:
    account = _owned_account(principal, account_id)
    detached = Transaction.query.filter_by(account_id=account.id).update(
        {Transaction.account_id: None}, synchronize_session=False
    )
    db.session.delete(account)
    persistence.commit()
    log.info(
        "account_deleted",
        user_id=principal.user_id,
        account_id=account_id,
        detached_transactions=detached,
    )
