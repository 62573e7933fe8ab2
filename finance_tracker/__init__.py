"""Personal Finance Tracker package."""

__all__ = [
    "config",
    "models",
    "db",
    "auth",
    "accounts",
    "transactions",
    "webapp",
    "records",
    "analytics",
    "api_client",
    "store",
]

__version__ = "0.1.0"
