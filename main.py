#!/usr/bin/env python3
"""
Fight Club community -- operator command line.

Usage:
  python main.py seed
  python main.py create-admin admin admin@example.com
  python main.py create-admin admin admin@example.com --password 's3cret-pass'
  python main.py reconcile
  python main.py serve --host 0.0.0.0 --port 3000
  python main.py --db-url sqlite:///other.db seed

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the forum database (default: ./fightclub.db)
  SECRET_KEY    Required by `serve` unless DEBUG=true
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.store import UserStore
from core.errors import Conflict
from forum.seed import create_admin, seed_boards
from forum.store import ForumStore

_MIN_PASSWORD = 6


def _cmd_seed(db_url: Optional[str]) -> int:
    store = ForumStore(db_url)
    try:
        created = seed_boards(store)
    finally:
        store.close()
    print(f"  {created} board(s) created.")
    return 0


def _cmd_create_admin(db_url: Optional[str], username: str, email: str, password: Optional[str]) -> int:
    if password is None:
        password = getpass.getpass("  Admin password: ")
        if password != getpass.getpass("  Repeat password: "):
            print("  [!] Passwords do not match.")
            return 1
    if len(password) < _MIN_PASSWORD:
        print(f"  [!] Password must be at least {_MIN_PASSWORD} characters.")
        return 1

    user_store = UserStore(db_url)
    try:
        user_id = create_admin(user_store, username, email.lower(), password)
    except Conflict as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        user_store.close()
    print(f"  Admin '{username}' created (id={user_id}).")
    return 0


def _cmd_reconcile(db_url: Optional[str]) -> int:
    store = ForumStore(db_url)
    try:
        report = store.reconcile_counters()
    finally:
        store.close()
    print(f"  Boards corrected: {report.boards}")
    print(f"  Posts corrected:  {report.posts}")
    print(f"  Users corrected:  {report.users}")
    return 0


def _cmd_serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fightclub",
        description="Fight Club community -- operator commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--db-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("seed", help="Create the default boards if they are missing")

    admin = sub.add_parser("create-admin", help="Create an admin account")
    admin.add_argument("username")
    admin.add_argument("email")
    admin.add_argument("--password", default=None, help="Password (prompted for when omitted)")

    sub.add_parser("reconcile", help="Recompute every cached counter from source rows")

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "seed":
        return _cmd_seed(args.db_url)
    if args.command == "create-admin":
        return _cmd_create_admin(args.db_url, args.username, args.email, args.password)
    if args.command == "reconcile":
        return _cmd_reconcile(args.db_url)
    if args.command == "serve":
        return _cmd_serve(args.host, args.port, args.reload)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
