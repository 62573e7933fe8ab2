"""Derived figures computed client-side from cached records.

Functions that compute summaries, balances and filtered views of transactions.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from .records import AccountRecord, Summary, TransactionRecord


def month_key(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def calculate_summary(txns: Iterable[TransactionRecord]) -> Summary:
    txns = list(txns)
    income = sum(t.amount for t in txns if t.type == "income")
    expense = sum(t.amount for t in txns if t.type == "expense")
    return Summary(
        total_income=round(income, 2),
        total_expense=round(expense, 2),
        balance=round(income - expense, 2),
    )


def account_balances(
    accounts: Sequence[AccountRecord],
    txns: Iterable[TransactionRecord],
) -> Dict[str, float]:
    """Current balance per account id: initial balance plus signed transactions."""
    balances: Dict[str, float] = {a.id: a.initial_balance for a in accounts}
    for t in txns:
        if t.account_id is not None and t.account_id in balances:
            balances[t.account_id] += t.signed_amount
    return {account_id: round(value, 2) for account_id, value in balances.items()}


def filter_transactions(
    txns: Iterable[TransactionRecord],
    years: Optional[Iterable[int]] = None,
    months: Optional[Iterable[int]] = None,
    categories: Optional[Iterable[str]] = None,
    accounts: Optional[Iterable[str]] = None,
) -> List[TransactionRecord]:
    """Keep transactions matching any value of each non-empty filter kind."""
    years = set(years or ())
    months = set(months or ())
    categories = set(categories or ())
    accounts = {str(a) for a in (accounts or ())}
    result = []
    for t in txns:
        if years and t.date.year not in years:
            continue
        if months and t.date.month not in months:
            continue
        if categories and t.category not in categories:
            continue
        if accounts and t.account_id not in accounts:
            continue
        result.append(t)
    return result


def unique_years(txns: Iterable[TransactionRecord]) -> List[int]:
    return sorted({t.date.year for t in txns}, reverse=True)


def unique_categories(txns: Iterable[TransactionRecord]) -> List[str]:
    return sorted({t.category for t in txns})


def spending_by_category(txns: Iterable[TransactionRecord]) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for t in txns:
        if t.type == "expense":
            totals[t.category or "Other"] += t.amount
    return {k: round(v, 2) for k, v in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)}


def monthly_totals(txns: Iterable[TransactionRecord]) -> Dict[str, Dict[str, float]]:
    months: Dict[str, Dict[str, float]] = defaultdict(lambda: {"income": 0.0, "expense": 0.0, "net": 0.0})
    for t in txns:
        m = month_key(t.date)
        months[m][t.type] += t.amount
        months[m]["net"] = months[m]["income"] - months[m]["expense"]
    # Round
    return {m: {k: round(v, 2) for k, v in vals.items()} for m, vals in sorted(months.items())}
