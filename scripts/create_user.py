import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts import AccountError, build_account_service, load_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user account")
    parser.add_argument("real_name", help="Full name of the account holder")
    parser.add_argument("user_name", help="Unique user name")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a YAML settings file (defaults to ACCOUNTS_CONFIG)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()

    try:
        settings = load_settings(config_path=Path(args.config_path) if args.config_path else None)
    except AccountError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    password = prompt_for_password()
    service = build_account_service(settings)

    try:
        user = service.create_user(args.real_name.strip(), args.user_name.strip(), args.email.strip(), password)
    except AccountError as exc:  # duplicates, bad email, etc.
        print(f"Error: {exc.message} ({exc.code})", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.user_name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
