"""Tests for the client store and the API client.

Unit tests drive the store with an in-memory fake API; the integration tests
run the real ApiClient against the Flask app through the test client.
"""

import pytest

from finance_tracker.api_client import ApiError
from finance_tracker.records import Summary
from finance_tracker.store import TransactionStore


def _row(id, type="expense", amount=10, account_id=None, date="2024-01-01T00:00:00.000Z"):
    return {
        "id": id,
        "type": type,
        "amount": amount,
        "description": f"row {id}",
        "category": "Food",
        "date": date,
        "accountId": account_id,
    }


class FakeApi:
    def __init__(self, rows=None, summary=None, accounts=None):
        self.rows = list(rows or [])
        self.summary = summary or {"totalIncome": 0, "totalExpense": 0, "balance": 0}
        self.accounts = list(accounts or [])
        self.fail = set()
        self.next_id = 100
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise ApiError(f"{name} failed", 500)

    def list_transactions(self):
        self._maybe_fail("list_transactions")
        return {"success": True, "count": len(self.rows), "transactions": list(self.rows)}

    def get_summary(self):
        self._maybe_fail("get_summary")
        return {"success": True, "summary": self.summary}

    def list_accounts(self):
        self._maybe_fail("list_accounts")
        return {"success": True, "accounts": list(self.accounts)}

    def create_transaction(self, data):
        self._maybe_fail("create_transaction")
        self.next_id += 1
        row = dict(data, id=self.next_id)
        row.pop("accountId", None)
        return {"success": True, "transaction": row}

    def delete_transaction(self, transaction_id):
        self._maybe_fail("delete_transaction")
        return {"success": True, "id": int(transaction_id)}


@pytest.fixture
def notes():
    return []


@pytest.fixture
def make_store(notes):
    def factory(api, **kwargs):
        return TransactionStore(api, notify=lambda level, message: notes.append((level, message)), **kwargs)

    return factory


class TestLoading:
    def test_new_store_holds_server_list_and_summary(self, make_store):
        api = FakeApi(
            rows=[_row(1, "income", 100), _row(2, "expense", 40)],
            summary={"totalIncome": 100, "totalExpense": 40, "balance": 60},
        )
        store = make_store(api)
        assert [t.id for t in store.transactions] == ["1", "2"]
        assert store.summary == Summary(100, 40, 60)
        assert store.is_loading is False
        assert api.calls == ["list_transactions", "get_summary"]

    def test_autoload_can_be_deferred(self, make_store):
        api = FakeApi(rows=[_row(1)], summary={"totalIncome": 0, "totalExpense": 10, "balance": -10})
        store = make_store(api, autoload=False)
        assert api.calls == []
        assert store.transactions == []
        assert store.summary == Summary()

        store.load()
        assert [t.id for t in store.transactions] == ["1"]
        assert store.summary == Summary(0, 10, -10)

    def test_load_failure_resets_to_empty_and_notifies(self, make_store, notes):
        api = FakeApi(rows=[_row(1)])
        store = make_store(api)
        assert len(store.transactions) == 1

        api.fail.add("list_transactions")
        store.refetch()
        assert store.transactions == []
        assert store.is_loading is False
        assert notes[-1] == ("error", "list_transactions failed")


class TestMutations:
    def test_add_prepends_and_recomputes_locally(self, make_store, notes):
        api = FakeApi(rows=[_row(1, "income", 100)])
        store = make_store(api)
        calls_before = list(api.calls)

        record = store.add_transaction(
            {"type": "expense", "amount": 30, "description": "Groceries", "category": "Food",
             "date": "2024-02-01T00:00:00Z", "accountId": "7"}
        )
        assert [t.id for t in store.transactions] == [record.id, "1"]
        assert record.account_id == "7"
        assert store.summary == Summary(100, 30, 70)
        assert api.calls[len(calls_before):] == ["create_transaction"]
        assert notes[-1] == ("success", "Expense added: Groceries")

    def test_local_summary_matches_server_cents(self, make_store):
        store = make_store(FakeApi(rows=[_row(1, "income", 0.1)]))
        store.add_transaction(
            {"type": "income", "amount": 0.2, "description": "Refund", "category": "Other",
             "date": "2024-02-01T00:00:00Z"}
        )
        assert store.summary.total_income == 0.3
        assert store.summary.balance == 0.3

    def test_add_failure_keeps_state_and_reraises(self, make_store, notes):
        api = FakeApi(rows=[_row(1)], summary={"totalIncome": 0, "totalExpense": 10, "balance": -10})
        store = make_store(api)
        api.fail.add("create_transaction")
        with pytest.raises(ApiError):
            store.add_transaction({"type": "income", "amount": 5})
        assert [t.id for t in store.transactions] == ["1"]
        assert store.summary == Summary(0, 10, -10)
        assert notes[-1][0] == "error"

    def test_delete_removes_and_recomputes(self, make_store, notes):
        api = FakeApi(rows=[_row(1, "income", 100), _row(2, "expense", 40)])
        store = make_store(api)
        store.delete_transaction("2")
        assert [t.id for t in store.transactions] == ["1"]
        assert store.summary == Summary(100, 0, 100)
        assert notes[-1] == ("success", "Expense deleted: row 2")

    def test_delete_failure_keeps_state(self, make_store):
        api = FakeApi(rows=[_row(1)])
        store = make_store(api)
        api.fail.add("delete_transaction")
        with pytest.raises(ApiError):
            store.delete_transaction("1")
        assert [t.id for t in store.transactions] == ["1"]


class TestDerivedBalances:
    def test_balances_follow_transactions_and_accounts(self, make_store):
        api = FakeApi(
            rows=[_row(1, "income", 50, account_id=1), _row(2, "expense", 20, account_id=1)],
            accounts=[{"id": 1, "name": "Bank", "type": "bank", "initialBalance": 100}],
        )
        store = make_store(api)
        store.load_accounts()
        assert store.account_balances == {"1": 130.0}

        store.delete_transaction("2")
        assert store.account_balances == {"1": 150.0}

        api.accounts.append({"id": 2, "name": "Cash", "type": "cash", "initialBalance": 5})
        store.load_accounts()
        assert store.account_balances == {"1": 150.0, "2": 5.0}

    def test_filtered_view(self, make_store):
        api = FakeApi(rows=[_row(1, date="2023-05-01T00:00:00Z"), _row(2, date="2024-05-01T00:00:00Z")])
        store = make_store(api)
        assert [t.id for t in store.filtered(years=[2024])] == ["2"]


class TestAgainstServer:
    def test_full_flow_through_api_client(self, api, make_store):
        api.signup("Ada", "ada@x.com", "secret1")
        assert api.token
        account = api.create_account({"name": "Wallet", "type": "cash", "initialBalance": 20})["account"]

        store = make_store(api)
        store.load_accounts()
        assert store.transactions == []
        assert store.summary == Summary(0, 0, 0)

        store.add_transaction(
            {"type": "expense", "amount": 42.5, "description": "Lunch", "category": "Food",
             "date": "2024-01-01T12:00:00Z", "accountId": account["id"]}
        )
        store.add_transaction(
            {"type": "income", "amount": 100, "description": "Pay", "category": "Salary",
             "date": "2024-01-02T12:00:00Z"}
        )
        assert store.summary == Summary(100, 42.5, 57.5)
        assert store.account_balances == {str(account["id"]): -22.5}

        store.refetch()
        server = Summary.from_api(api.get_summary()["summary"])
        assert store.summary == server

    def test_api_errors_carry_server_message(self, api):
        with pytest.raises(ApiError) as excinfo:
            api.login("nobody@x.com", "secret1")
        assert excinfo.value.status_code == 401
        assert excinfo.value.message == "Invalid email or password"

    def test_logout_drops_token(self, api):
        api.signup("Ada", "ada@x.com", "secret1")
        assert api.get_profile()["user"]["email"] == "ada@x.com"
        api.logout()
        with pytest.raises(ApiError) as excinfo:
            api.get_profile()
        assert excinfo.value.status_code == 401

    def test_health(self, api):
        assert api.health() is True
