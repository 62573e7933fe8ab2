"""Flask REST interface for the Finance Tracker."""

from __future__ import annotations

import time
import traceback
from typing import Any, Dict, Mapping, Optional

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from . import accounts as account_ledger
from . import auth
from . import transactions as transaction_ledger
from .config import AppConfig
from .db import init_db, to_iso
from .errors import FinanceTrackerError, ValidationError
from .log import configure_logging, get_logger
from .models import MAX_ID, db, utcnow

log = get_logger(__name__)


def _envelope(status: int = 200, **fields: Any):
    body: Dict[str, Any] = {"success": status < 400}
    body.update(fields)
    return jsonify(body), status


def _json_body() -> Mapping[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _handle_api_error(exc: FinanceTrackerError):
    return _envelope(exc.status_code, message=exc.message)


def _handle_http_error(exc: HTTPException):
    if exc.code is not None and exc.code < 400:
        return exc
    if exc.code == 404:
        message = f"Route {request.path} not found"
    else:
        message = exc.description or exc.name
    return _envelope(exc.code or 500, message=message)


def _handle_unexpected_error(exc: Exception):
    log.error("unhandled_error", path=request.path, exc_info=exc)
    extra: Dict[str, Any] = {}
    if current_app.config.get("ENV_NAME", "").lower() == "development":
        extra["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return _envelope(500, message="Internal Server Error", **extra)


def _start_timer() -> None:
    g.request_started = time.perf_counter()


def _log_request(response):
    started = g.pop("request_started", None)
    duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else None
    log.info(
        "request",
        method=request.method,
        path=request.path,
        status=response.status_code,
        duration_ms=duration_ms,
    )
    return response


def create_app(config: Optional[AppConfig] = None, config_path: Optional[str] = None) -> Flask:
    cfg = config or AppConfig.load(config_path)
    configure_logging(cfg.log_level, cfg.log_json)

    app = Flask(__name__)
    app.config.update(cfg.flask_config())
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.json.sort_keys = False

    db.init_app(app)
    with app.app_context():
        init_db()

    app.before_request(_start_timer)
    app.after_request(_log_request)
    app.register_error_handler(FinanceTrackerError, _handle_api_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected_error)

    @app.route("/health")
    def health():
        return _envelope(message="Server is running", timestamp=to_iso(utcnow()))

    # ---------------------- Auth ----------------------
    @app.route("/api/auth/signup", methods=["POST"])
    def signup():
        data = _json_body()
        result = auth.signup(data.get("name"), data.get("email"), data.get("password"))
        return _envelope(201, message="Account created successfully", **result)

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = _json_body()
        result = auth.login(data.get("email"), data.get("password"))
        return _envelope(message="Logged in successfully", **result)

    @app.route("/api/auth/me")
    @auth.login_required
    def me(principal):
        return _envelope(user=auth.get_profile(principal))

    # ---------------------- Accounts ----------------------
    @app.route("/api/accounts", methods=["GET"])
    @auth.login_required
    def list_accounts(principal):
        return _envelope(accounts=account_ledger.list_accounts(principal))

    @app.route("/api/accounts", methods=["POST"])
    @auth.login_required
    def create_account(principal):
        account = account_ledger.create_account(principal, _json_body())
        return _envelope(201, account=account)

    @app.route(f"/api/accounts/<int(max={MAX_ID}):account_id>", methods=["PUT"])
    @auth.login_required
    def update_account(principal, account_id: int):
        account = account_ledger.update_account(principal, account_id, _json_body())
        return _envelope(account=account)

    @app.route(f"/api/accounts/<int(max={MAX_ID}):account_id>", methods=["DELETE"])
    @auth.login_required
    def delete_account(principal, account_id: int):
        account_ledger.delete_account(principal, account_id)
        return _envelope(message="Account deleted")

    # ---------------------- Transactions ----------------------
    @app.route("/api/transactions", methods=["GET"])
    @auth.login_required
    def list_transactions(principal):
        rows = transaction_ledger.list_transactions(principal)
        return _envelope(count=len(rows), transactions=rows)

    @app.route("/api/transactions/summary", methods=["GET"])
    @auth.login_required
    def transaction_summary(principal):
        return _envelope(summary=transaction_ledger.get_summary(principal))

    @app.route(f"/api/transactions/<int(max={MAX_ID}):transaction_id>", methods=["GET"])
    @auth.login_required
    def get_transaction(principal, transaction_id: int):
        return _envelope(transaction=transaction_ledger.get_transaction(principal, transaction_id))

    @app.route("/api/transactions", methods=["POST"])
    @auth.login_required
    def create_transaction(principal):
        txn = transaction_ledger.create_transaction(principal, _json_body())
        return _envelope(201, message="Transaction created successfully", transaction=txn)

    @app.route(f"/api/transactions/<int(max={MAX_ID}):transaction_id>", methods=["PUT"])
    @auth.login_required
    def update_transaction(principal, transaction_id: int):
        txn = transaction_ledger.update_transaction(principal, transaction_id, _json_body())
        return _envelope(message="Transaction updated successfully", transaction=txn)

    @app.route(f"/api/transactions/<int(max={MAX_ID}):transaction_id>", methods=["DELETE"])
    @auth.login_required
    def delete_transaction(principal, transaction_id: int):
        deleted_id = transaction_ledger.delete_transaction(principal, transaction_id)
        return _envelope(message="Transaction deleted successfully", id=deleted_id)

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
