"""SQLAlchemy models for the Finance Tracker."""

from __future__ import annotations

import datetime as dt

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

ACCOUNT_TYPES = ("cash", "bank", "credit", "investment", "savings", "other")
TRANSACTION_TYPES = ("income", "expense")
DEFAULT_ACCOUNT_ICON = "wallet"
# Largest primary key a signed 64-bit INTEGER column can hold.
MAX_ID = 2**63 - 1


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def _in_check(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    accounts = db.relationship(
        "Account", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    transactions = db.relationship(
        "Transaction", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class Account(db.Model):
    __tablename__ = "accounts"
    __table_args__ = (
        db.CheckConstraint(_in_check("type", ACCOUNT_TYPES), name="ck_accounts_type"),
        db.Index("idx_accounts_user_id", "user_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    account_number = db.Column(db.String(100))
    icon = db.Column(db.String(50), default=DEFAULT_ACCOUNT_ICON)
    initial_balance = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship("User", back_populates="accounts")
    # No cascade: deleting an account detaches its transactions.
    transactions = db.relationship("Transaction", back_populates="account", passive_deletes=True)


class Transaction(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint(_in_check("type", TRANSACTION_TYPES), name="ck_transactions_type"),
        db.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        db.Index("idx_transactions_user_id", "user_id"),
        db.Index("idx_transactions_date", "date"),
        db.Index("idx_transactions_type", "type"),
        db.Index("idx_transactions_account_id", "account_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    date = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship("User", back_populates="transactions")
    account = db.relationship("Account", back_populates="transactions")
