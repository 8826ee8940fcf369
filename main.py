#!/usr/bin/env python3
"""
FitTrack -- user accounts API for the FitTrack fitness client.

Usage:
  python main.py serve
  python main.py serve --port 9000
  python main.py serve --host 0.0.0.0 --reload

Environment variables (or .env):
  ENVIRONMENT   development (default), production or test.
  DATABASE_URL  SQLAlchemy URL. Required outside development.
  JWT_SECRET    Token signing secret, 32+ chars. Required outside development.
  PORT          Listen port when --port is not given (default 8000).
"""

import argparse
import sys

import uvicorn
from pydantic import ValidationError

from core.config import get_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fittrack",
        description="FitTrack user accounts API.",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the API server with uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT setting).")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only).")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["serve", *(argv or [])])

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.reload and settings.is_production:
        print("  [!] --reload is not allowed with ENVIRONMENT=production.", file=sys.stderr)
        return 2

    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
