"""HTTP client for the Finance Tracker REST API."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    """Raised for any non-2xx response; ``message`` is the server's message."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiError(f"Unable to reach server: {exc}") from exc
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if not response.ok:
            raise ApiError(data.get("message") or "Something went wrong", response.status_code)
        return data

    # Auth
    def signup(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/api/auth/signup", {"name": name, "email": email, "password": password})
        self.token = data.get("token") or self.token
        return data

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.token = data.get("token") or self.token
        return data

    def get_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/api/auth/me")

    def logout(self) -> None:
        self.token = None

    # Transactions
    def list_transactions(self) -> Dict[str, Any]:
        return self._request("GET", "/api/transactions")

    def get_transaction(self, transaction_id: str | int) -> Dict[str, Any]:
        return self._request("GET", f"/api/transactions/{transaction_id}")

    def create_transaction(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/transactions", transaction)

    def update_transaction(self, transaction_id: str | int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/api/transactions/{transaction_id}", changes)

    def delete_transaction(self, transaction_id: str | int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/transactions/{transaction_id}")

    def get_summary(self) -> Dict[str, Any]:
        return self._request("GET", "/api/transactions/summary")

    # Accounts
    def list_accounts(self) -> Dict[str, Any]:
        return self._request("GET", "/api/accounts")

    def create_account(self, account: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/accounts", account)

    def update_account(self, account_id: str | int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/api/accounts/{account_id}", changes)

    def delete_account(self, account_id: str | int) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/accounts/{account_id}")

    def health(self) -> bool:
        try:
            self._request("GET", "/health")
        except ApiError:
            return False
        return True
