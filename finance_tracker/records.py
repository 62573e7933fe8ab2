"""Client-side records.

Normalizes API payloads into a common schema with fields:
    id (str), type (str), amount (float), description (str), category (str),
    date (datetime.datetime, UTC), account_id (str|None)

The API speaks camelCase but older payloads used snake_case column names, so
both spellings are accepted.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


def _parse_timestamp(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Unrecognized date format: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def _optional_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass
class TransactionRecord:
    id: str
    type: str  # "income" or "expense"
    amount: float  # always positive
    description: str
    category: str
    date: dt.datetime
    account_id: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == "income" else -self.amount

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "TransactionRecord":
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            amount=_to_float(data.get("amount")),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            date=_parse_timestamp(data["date"]),
            account_id=_optional_id(_pick(data, "accountId", "account_id")),
        )


@dataclass
class AccountRecord:
    id: str
    name: str
    type: str
    initial_balance: float = 0.0
    icon: str = "wallet"
    account_number: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "AccountRecord":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or "other"),
            initial_balance=_to_float(_pick(data, "initialBalance", "initial_balance")),
            icon=str(data.get("icon") or "wallet"),
            account_number=_pick(data, "accountNumber", "account_number"),
        )


@dataclass
class Summary:
    total_income: float = 0.0
    total_expense: float = 0.0
    balance: float = 0.0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Summary":
        return cls(
            total_income=_to_float(data.get("totalIncome")),
            total_expense=_to_float(data.get("totalExpense")),
            balance=_to_float(data.get("balance")),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalIncome": self.total_income,
            "totalExpense": self.total_expense,
            "balance": self.balance,
        }
