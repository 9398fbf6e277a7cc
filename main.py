"""Command-line interface for the account service."""

from __future__ import annotations
import argparse
import json
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from accounts import AccountError, AccountService, Database, build_account_service, load_settings

logger = logging.getLogger("accounts.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User account management utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (defaults to ACCOUNTS_CONFIG when set)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="list-users")

    subparsers.add_parser("init-db", help="Initialise the account database")
    subparsers.add_parser("list-users", help="List every registered account")

    create_parser = subparsers.add_parser("create-user", help="Create a new account")
    create_parser.add_argument("real_name", help="Full name of the account holder")
    create_parser.add_argument("user_name", help="Unique user name")
    create_parser.add_argument("email", help="Unique email address for login")

    login_parser = subparsers.add_parser("login", help="Authenticate and print a session token")
    login_parser.add_argument("email", help="Email address of the account")

    verify_parser = subparsers.add_parser("verify-token", help="Verify a session token and print its claims")
    verify_parser.add_argument("token", help="Session token to verify")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    return parser.parse_args(args_list)


def _build_service(config: str | None) -> AccountService:
    settings = load_settings(config_path=Path(config).expanduser() if config else None)
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return build_account_service(settings, database=database)


def _prompt_for_password(*, confirm: bool) -> str | None:
    for _ in range(3):
        password = getpass("Password: ")
        if not password:
            print("Password must not be empty. Please try again.")
            continue
        if not confirm:
            return password
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _list_users(service: AccountService) -> None:
    users = [user.to_public() for user in service.list_users()]
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'User name':<20}  {'Email':<32}  Created")
    print("-" * 110)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:<36}  {user.user_name:<20}  {user.email:<32}  {created}")


def _create_user(service: AccountService, args: argparse.Namespace) -> int:
    password = _prompt_for_password(confirm=True)
    if password is None:
        print("Aborted creating user.")
        return 1

    user = service.create_user(args.real_name.strip(), args.user_name.strip(), args.email.strip(), password)
    print(json.dumps(user.to_public().to_dict(), indent=2))
    return 0


def _login(service: AccountService, args: argparse.Namespace) -> int:
    password = _prompt_for_password(confirm=False)
    if password is None:
        return 1
    session = service.authenticate(args.email.strip(), password)
    print(json.dumps(session.to_dict(), indent=2))
    return 0


def _verify_token(service: AccountService, args: argparse.Namespace) -> int:
    claims = service.verify_token(args.token)
    print(json.dumps(claims, indent=2, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    try:
        service = _build_service(args.config)
        if args.command == "init-db":
            print("Database initialisation complete.")
            return 0
        if args.command == "list-users":
            _list_users(service)
            return 0
        if args.command == "create-user":
            return _create_user(service, args)
        if args.command == "login":
            return _login(service, args)
        if args.command == "verify-token":
            return _verify_token(service, args)
    except AccountError as exc:
        print(f"Error: {exc.message} ({exc.code})", file=sys.stderr)
        return 1

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
