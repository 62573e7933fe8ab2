"""Configuration utilities for the Finance Tracker.

Settings come from built-in defaults, an optional JSON file and the process
environment, in that order of precedence.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'finance_tracker.db'}"
DEFAULT_SECRET_KEY = "dev-secret-key-change-me"
DEFAULT_TOKEN_TTL = 7 * 24 * 60 * 60

# Environment variable names per field. The first name found wins.
ENV_VARS: Dict[str, tuple] = {
    "database_url": ("DATABASE_URL",),
    "secret_key": ("SECRET_KEY", "JWT_SECRET"),
    "token_ttl": ("TOKEN_EXPIRES_IN", "JWT_EXPIRES_IN"),
    "env": ("APP_ENV", "NODE_ENV"),
    "log_level": ("LOG_LEVEL",),
    "log_json": ("LOG_JSON",),
    "host": ("HOST",),
    "port": ("PORT",),
}

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)


def parse_duration(value: Any) -> int:
    """Convert ``3600``, ``"30m"``, ``"12h"`` or ``"7d"`` to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_RE.match(str(value))
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        seconds = int(match.group(1)) * _DURATION_UNITS[(match.group(2) or "s").lower()]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = DEFAULT_SECRET_KEY
    token_ttl: int = DEFAULT_TOKEN_TTL
    env: str = "production"
    log_level: str = "INFO"
    log_json: bool = False
    host: str = "127.0.0.1"
    port: int = 5000

    @property
    def is_development(self) -> bool:
        return self.env.lower() == "development"

    def flask_config(self) -> Dict[str, Any]:
        return {
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "SECRET_KEY": self.secret_key,
            "TOKEN_TTL": self.token_ttl,
            "ENV_NAME": self.env,
        }

    @staticmethod
    def load(
        config_path: Optional[str | Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "AppConfig":
        """Load config from JSON if provided, then apply environment overrides.

        JSON format (all keys optional):
        {
          "database_url": "sqlite:///finance.db",
          "secret_key": "change-me",
          "token_ttl": "7d",
          "env": "development"
        }
        """

        env = os.environ if env is None else env
        raw: Dict[str, Any] = {}

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    known = {f.name for f in fields(AppConfig)}
                    raw.update({k: v for k, v in loaded.items() if k in known})

        for name, names in ENV_VARS.items():
            for var in names:
                if env.get(var):
                    raw[name] = env[var]
                    break

        cfg = AppConfig()
        if "database_url" in raw:
            cfg.database_url = str(raw["database_url"])
        if "secret_key" in raw:
            cfg.secret_key = str(raw["secret_key"])
        if "token_ttl" in raw:
            cfg.token_ttl = parse_duration(raw["token_ttl"])
        if "env" in raw:
            cfg.env = str(raw["env"])
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"]).upper()
        if "log_json" in raw:
            cfg.log_json = _parse_bool(raw["log_json"])
        if "host" in raw:
            cfg.host = str(raw["host"])
        if "port" in raw:
            cfg.port = int(raw["port"])
        return cfg
