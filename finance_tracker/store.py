"""Client data store: the UI's single source of truth for ledger state.

Reconciliation rules:

* The store loads on construction unless ``autoload=False``.
* ``load()``/``refetch()`` replace the cache with the server's list and take
  the server-computed summary.
* ``add_transaction``/``delete_transaction`` update the cache in place after
  the server confirms, then recompute the summary locally with
  :func:`analytics.calculate_summary` instead of asking the server again.
* A failed mutation leaves the cache as it was. A failed load empties it.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from . import analytics as an
from .api_client import ApiClient, ApiError
from .log import get_logger
from .records import AccountRecord, Summary, TransactionRecord

log = get_logger(__name__)

Notifier = Callable[[str, str], None]


def log_notifier(level: str, message: str) -> None:
    if level == "error":
        log.error("notification", message=message)
    else:
        log.info("notification", level=level, message=message)


def _label(txn_type: str) -> str:
    return "Income" if txn_type == "income" else "Expense"


class TransactionStore:
    def __init__(self, api: ApiClient, notify: Optional[Notifier] = None, autoload: bool = True) -> None:
        self.api = api
        self.notify = notify or log_notifier
        self._transactions: List[TransactionRecord] = []
        self._accounts: List[AccountRecord] = []
        self._summary = Summary()
        self._balances: Optional[Dict[str, float]] = None
        self.is_loading = False
        if autoload:
            self.load()

    @property
    def transactions(self) -> List[TransactionRecord]:
        return list(self._transactions)

    @property
    def accounts(self) -> List[AccountRecord]:
        return list(self._accounts)

    @property
    def summary(self) -> Summary:
        return self._summary

    @property
    def account_balances(self) -> Dict[str, float]:
        if self._balances is None:
            self._balances = an.account_balances(self._accounts, self._transactions)
        return dict(self._balances)

    def _set_transactions(self, txns: List[TransactionRecord]) -> None:
        self._transactions = txns
        self._balances = None

    def _set_accounts(self, accounts: List[AccountRecord]) -> None:
        self._accounts = accounts
        self._balances = None

    def load(self) -> None:
        """Fetch transactions and the server summary; never raises."""
        self.is_loading = True
        try:
            response = self.api.list_transactions()
            self._set_transactions([TransactionRecord.from_api(t) for t in response.get("transactions", [])])
            summary_response = self.api.get_summary()
            self._summary = Summary.from_api(summary_response.get("summary", {}))
        except (ApiError, ValueError, KeyError) as exc:
            log.warning("transactions_load_failed", error=str(exc))
            self.notify("error", getattr(exc, "message", None) or "Failed to load transactions")
            self._set_transactions([])
        finally:
            self.is_loading = False

    refetch = load

    def load_accounts(self) -> None:
        try:
            response = self.api.list_accounts()
            self._set_accounts([AccountRecord.from_api(a) for a in response.get("accounts", [])])
        except (ApiError, ValueError, KeyError) as exc:
            log.warning("accounts_load_failed", error=str(exc))
            self.notify("error", getattr(exc, "message", None) or "Failed to load accounts")

    def add_transaction(self, data: Dict[str, Any]) -> TransactionRecord:
        try:
            response = self.api.create_transaction(data)
        except ApiError as exc:
            self.notify("error", exc.message or "Failed to add transaction")
            raise
        record = TransactionRecord.from_api(response["transaction"])
        if record.account_id is None and data.get("accountId") not in (None, ""):
            record.account_id = str(data["accountId"])
        self._set_transactions([record] + self._transactions)
        self._summary = an.calculate_summary(self._transactions)
        self.notify("success", f"{_label(record.type)} added: {record.description}")
        return record

    def delete_transaction(self, transaction_id: str) -> None:
        transaction_id = str(transaction_id)
        existing = next((t for t in self._transactions if t.id == transaction_id), None)
        try:
            self.api.delete_transaction(transaction_id)
        except ApiError as exc:
            self.notify("error", exc.message or "Failed to delete transaction")
            raise
        self._set_transactions([t for t in self._transactions if t.id != transaction_id])
        self._summary = an.calculate_summary(self._transactions)
        if existing is not None:
            self.notify("success", f"{_label(existing.type)} deleted: {existing.description}")

    def filtered(
        self,
        years: Optional[Iterable[int]] = None,
        months: Optional[Iterable[int]] = None,
        categories: Optional[Iterable[str]] = None,
        accounts: Optional[Iterable[str]] = None,
    ) -> List[TransactionRecord]:
        return an.filter_transactions(self._transactions, years, months, categories, accounts)
