"""
Command-line interface for Authify. Run from project root:
  python -m authify.cli <command> [options]
Examples:
  python -m authify.cli create-user --username alice --password secret1 --field email=a@b.com
  python -m authify.cli generate-token --username alice --password secret1
  python -m authify.cli verify-token --token <access>
  python -m authify.cli refresh-token --access <access> --refresh <refresh>
"""
import argparse
import logging
import sys
from collections.abc import Sequence

from dotenv import load_dotenv

from authify.core.config import get_settings
from authify.core.factory import build_authify
from authify.exceptions import AuthifyError
from authify.services.auth_service import Authify
from authify.stores.schema import PASSWORD_COLUMN

logger = logging.getLogger(__name__)


def _parse_field(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value, got {raw!r}")
    return name, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authify",
        description="Create users and issue, verify and refresh Authify tokens.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-user", help="Create a new user")
    create.add_argument("--username", required=True)
    create.add_argument("--password", required=True)
    create.add_argument(
        "--field",
        action="append",
        default=[],
        type=_parse_field,
        metavar="NAME=VALUE",
        help="Extra schema column value (repeatable)",
    )

    generate = commands.add_parser("generate-token", help="Generate access & refresh tokens")
    generate.add_argument("--username", required=True)
    generate.add_argument("--password", required=True)
    generate.add_argument("--ip", default="cli", help="Client identifier (IP or device)")

    verify = commands.add_parser("verify-token", help="Verify an access token")
    verify.add_argument("--token", required=True, help="Access token")

    refresh = commands.add_parser("refresh-token", help="Refresh an access token")
    refresh.add_argument("--access", required=True, help="Access token")
    refresh.add_argument("--refresh", required=True, help="Refresh token")
    return parser


def run(args: argparse.Namespace, authify: Authify) -> int:
    """Execute one parsed command against an Authify instance; returns the exit code."""
    try:
        if args.command == "create-user":
            fields = dict(args.field)
            fields[authify.store.schema().username_column] = args.username
            fields[PASSWORD_COLUMN] = args.password
            authify.store.create_user(fields)
            print(f"User created: {args.username}")
        elif args.command == "generate-token":
            access_token = authify.tokens.generate_token(args.username, args.password)
            refresh_token = authify.tokens.generate_refresh_token(args.username, args.ip)
            print("Access Token:")
            print(access_token)
            print("\nRefresh Token:")
            print(refresh_token)
        elif args.command == "verify-token":
            username, role = authify.tokens.verify_token(args.token, is_refresh=False)
            print(f"Token valid\nUser: {username}\nRole: {role}")
        elif args.command == "refresh-token":
            new_token, username = authify.tokens.refresh_token(args.access, args.refresh)
            print(f"Token refreshed for user: {username}\nNew Access Token:\n{new_token}")
    except AuthifyError as e:
        print(f"Error ({e.kind.value}): {e.message}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    try:
        authify = build_authify(settings)
    except AuthifyError as e:
        logger.error("Unable to initialize Authify: %s", e.message)
        return 1
    return run(args, authify)


if __name__ == "__main__":
    sys.exit(main())
