"""Command line interface for gws-mcp.

Usage:
    gws-mcp [serve] [--creds PATH]                      # Run the MCP server over stdio
    gws-mcp auth login --secrets PATH [--account EMAIL] # Authorize an account
    gws-mcp auth list                                   # Show configured accounts
    gws-mcp auth logout --account EMAIL                 # Forget an account
"""

import argparse
import logging
import sys
from typing import List, Optional

from .auth.credential_store import CredentialStore
from .auth.login import login
from .core import config
from .utils.errors import GwsMcpError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Send logs to stderr; stdout carries the MCP stdio transport."""
    level = getattr(logging, config.get_log_level(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the MCP server."""
    from .server import serve

    if args.creds:
        print(f"Using credentials file: {args.creds}", file=sys.stderr)
    try:
        serve(credentials_file=args.creds)
        return 0
    except GwsMcpError as e:
        print(f"Auth error: {e}", file=sys.stderr)
        return 1


def cmd_login(args: argparse.Namespace) -> int:
    """Run the OAuth login flow and store the token."""
    store = CredentialStore()
    timeout = args.timeout if args.timeout is not None else config.get_login_timeout()

    print("Starting OAuth 2.0 flow...")
    try:
        login(args.secrets, store, account=args.account, timeout=timeout)
    except GwsMcpError as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return 1

    if args.account:
        print(f"Setup complete for {args.account}! Pass account=\"{args.account}\" to select it.")
    else:
        print("Setup complete! You can now run 'gws-mcp' without arguments.")
    return 0


def cmd_list(_args: argparse.Namespace) -> int:
    """Print the configured accounts."""
    store = CredentialStore()
    try:
        accounts = store.list_accounts()
    except OSError as e:
        print(f"Failed to list accounts: {e}", file=sys.stderr)
        return 1

    print(f"Config directory: {store.root}")
    if not accounts:
        print("No per-account logins; single-account mode.")
        return 0
    print("Multi-account mode. Accounts:")
    for account in accounts:
        print(f"  {account}")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    """Remove an account's stored credentials."""
    store = CredentialStore()
    try:
        removed = store.delete_account(args.account)
    except (GwsMcpError, OSError) as e:
        print(f"Failed to remove account: {e}", file=sys.stderr)
        return 1

    if removed:
        print(f"Credentials removed for {args.account}")
    else:
        print(f"No stored credentials for {args.account}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gws-mcp",
        description="Google Workspace MCP server with multi-account OAuth",
    )
    subparsers = parser.add_subparsers(dest="command")

    # serve subcommand (default)
    serve_parser = subparsers.add_parser("serve", help="Run the MCP server over stdio")
    serve_parser.add_argument(
        "--creds",
        metavar="PATH",
        help="Path to Google Service Account JSON file (optional)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # auth subcommands
    auth_parser = subparsers.add_parser("auth", help="Manage account credentials")
    auth_sub = auth_parser.add_subparsers(dest="subcommand", required=True)

    login_parser = auth_sub.add_parser(
        "login",
        help="Authorize an account in the browser",
    )
    login_parser.add_argument(
        "--secrets",
        required=True,
        metavar="PATH",
        help="Path to client_secrets.json from the Google Cloud Console",
    )
    login_parser.add_argument(
        "--account",
        metavar="EMAIL",
        help="Store the login under this account (enables multi-account mode)",
    )
    login_parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help=f"Give up waiting for the browser after this long (or set {config.LOGIN_TIMEOUT_ENV})",
    )
    login_parser.set_defaults(func=cmd_login)

    list_parser = auth_sub.add_parser("list", help="Show configured accounts")
    list_parser.set_defaults(func=cmd_list)

    logout_parser = auth_sub.add_parser("logout", help="Forget an account")
    logout_parser.add_argument("--account", required=True, metavar="EMAIL")
    logout_parser.set_defaults(func=cmd_logout)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    configure_logging()
    argv = list(sys.argv[1:] if argv is None else argv)
    # No sub-command means serve, as in `gws-mcp --creds sa.json`
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        argv = ["serve", *argv]
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
