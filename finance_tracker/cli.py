"""Command-line interface for the Finance Tracker.

Usage:
  python -m finance_tracker.cli init-db
  python -m finance_tracker.cli serve --port 5000

Both commands accept ``--config`` pointing at a JSON config file; environment
variables still override it.
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from .config import AppConfig
from .db import init_db
from .log import get_logger
from .webapp import create_app

log = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Finance Tracker")
    p.add_argument("--config", "-c", help="Path to JSON config file")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", help="Interface to bind (default from config)")
    serve.add_argument("--port", type=int, help="Port to listen on (default from config)")
    serve.add_argument("--debug", action="store_true", help="Enable the Flask debugger")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = AppConfig.load(args.config)
    app = create_app(cfg)

    if args.command == "init-db":
        with app.app_context():
            init_db()
        log.info("database_initialized", database_url=cfg.database_url)
        print("Database initialized.")
        return 0

    host = args.host or cfg.host
    port = args.port or cfg.port
    log.info("server_starting", host=host, port=port, env=cfg.env)
    app.run(host=host, port=port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
