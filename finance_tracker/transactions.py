"""Transaction ledger: CRUD over a user's transactions plus the summary query."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import case, func

from . import db as persistence
from .auth import Principal
from .db import UNSET, apply_patch, parse_datetime, to_decimal, to_float, to_iso
from .errors import ForeignKeyError, NotFoundError, ValidationError
from .log import get_logger
from .models import MAX_ID, TRANSACTION_TYPES, Account, Transaction, db

log = get_logger(__name__)

DESCRIPTION_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 100
REQUIRED_FIELDS = ("type", "amount", "description", "category", "date")


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_type(value: Any) -> str:
    if value not in TRANSACTION_TYPES:
        raise ValidationError('Type must be either "income" or "expense"')
    return value


def _clean_amount(value: Any) -> Decimal:
    amount = to_decimal(value, "Amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    return amount


def _clean_text(value: Any, label: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters")
    return text


def _clean_account_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Account id must be an integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError("Account id must be an integer")
    if not 0 < value <= MAX_ID:
        raise ForeignKeyError()
    return value


def _ensure_account_owned(principal: Principal, account_id: Optional[int]) -> None:
    if account_id is None:
        return
    owned = Account.query.filter_by(id=account_id, user_id=principal.user_id).first()
    if owned is None:
        raise ForeignKeyError()


@dataclass
class TransactionPatch:
    """Fields to change on a transaction; ``account_id=None`` detaches it."""

    type: Any = UNSET
    amount: Any = UNSET
    description: Any = UNSET
    category: Any = UNSET
    date: Any = UNSET
    account_id: Any = UNSET

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "TransactionPatch":
        patch = cls()
        if "type" in data:
            patch.type = _clean_type(data["type"])
        if "amount" in data:
            patch.amount = _clean_amount(data["amount"])
        if "description" in data:
            patch.description = _clean_text(data["description"], "Description", DESCRIPTION_MAX_LENGTH)
        if "category" in data:
            patch.category = _clean_text(data["category"], "Category", CATEGORY_MAX_LENGTH)
        if "date" in data:
            patch.date = parse_datetime(data["date"])
        if "accountId" in data:
            patch.account_id = _clean_account_id(data["accountId"])
        return patch

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is UNSET for f in fields(self))


def serialize_transaction(txn: Transaction) -> Dict[str, Any]:
    return {
        "id": txn.id,
        "type": txn.type,
        "amount": to_float(txn.amount),
        "description": txn.description,
        "category": txn.category,
        "date": to_iso(txn.date),
        "accountId": txn.account_id,
        "createdAt": to_iso(txn.created_at),
        "updatedAt": to_iso(txn.updated_at),
    }


def _owned_transaction(principal: Principal, transaction_id: int) -> Transaction:
    txn = Transaction.query.filter_by(id=transaction_id, user_id=principal.user_id).first()
    if txn is None:
        raise NotFoundError("Transaction not found")
    return txn


def list_transactions(principal: Principal) -> List[Dict[str, Any]]:
    rows = (
        Transaction.query.filter_by(user_id=principal.user_id)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
    return [serialize_transaction(row) for row in rows]


def get_transaction(principal: Principal, transaction_id: int) -> Dict[str, Any]:
    return serialize_transaction(_owned_transaction(principal, transaction_id))


def create_transaction(principal: Principal, data: Mapping[str, Any]) -> Dict[str, Any]:
    if any(_missing(data.get(name)) for name in REQUIRED_FIELDS):
        raise ValidationError("Please provide all required fields")
    account_id = _clean_account_id(data.get("accountId"))
    txn = Transaction(
        user_id=principal.user_id,
        type=_clean_type(data["type"]),
        amount=_clean_amount(data["amount"]),
        description=_clean_text(data["description"], "Description", DESCRIPTION_MAX_LENGTH),
        category=_clean_text(data["category"], "Category", CATEGORY_MAX_LENGTH),
        date=parse_datetime(data["date"]),
        account_id=account_id,
    )
    _ensure_account_owned(principal, account_id)
    db.session.add(txn)
    persistence.commit()
    log.info("transaction_created", user_id=principal.user_id, transaction_id=txn.id)
    return serialize_transaction(txn)


def update_transaction(
    principal: Principal,
    transaction_id: int,
    patch: TransactionPatch | Mapping[str, Any],
) -> Dict[str, Any]:
    txn = _owned_transaction(principal, transaction_id)
    if not isinstance(patch, TransactionPatch):
        patch = TransactionPatch.from_payload(patch)
    if patch.is_empty():
        raise ValidationError("No fields to update")
    if patch.account_id is not UNSET:
        _ensure_account_owned(principal, patch.account_id)
    apply_patch(txn, patch)
    persistence.commit()
    return serialize_transaction(txn)


def delete_transaction(principal: Principal, transaction_id: int) -> int:
    deleted = Transaction.query.filter_by(id=transaction_id, user_id=principal.user_id).delete(
        synchronize_session=False
    )
    if not deleted:
        raise NotFoundError("Transaction not found")
    persistence.commit()
    log.info("transaction_deleted", user_id=principal.user_id, transaction_id=transaction_id)
    return transaction_id


def get_summary(principal: Principal) -> Dict[str, float]:
    income = func.coalesce(
        func.sum(case((Transaction.type == "income", Transaction.amount), else_=0)), 0
    )
    expense = func.coalesce(
        func.sum(case((Transaction.type == "expense", Transaction.amount), else_=0)), 0
    )
    row = (
        db.session.query(income.label("total_income"), expense.label("total_expense"))
        .filter(Transaction.user_id == principal.user_id)
        .one()
    )
    total_income = Decimal(str(row.total_income or 0))
    total_expense = Decimal(str(row.total_expense or 0))
    return {
        "totalIncome": to_float(total_income),
        "totalExpense": to_float(total_expense),
        "balance": to_float(total_income - total_expense),
    }
