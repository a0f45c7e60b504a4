#!/usr/bin/env python3
"""
RBAC Guard - Main Entry Point
=============================

Usage:
    rbac-guard init-db
    rbac-guard reset --yes
    rbac-guard analyze --username admin
    rbac-guard console
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional

from rbac_guard.access.context import PrincipalContext
from rbac_guard.app import RbacApp, create_app
from rbac_guard.bootstrap import reset, seed_defaults
from rbac_guard.config import get_settings
from rbac_guard.console import run_console
from rbac_guard.exceptions import RbacError


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="rbac-guard",
        description="RBAC Guard - role-based access control with audit trail",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: RBAC_LOG_LEVEL or INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create tables and seed the admin user, roles and permissions")

    reset_parser = commands.add_parser("reset", help="Restore the seed state and delete the audit log")
    reset_parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Do not ask for confirmation",
    )

    analyze_parser = commands.add_parser("analyze", help="Log in and analyze the audit trail")
    analyze_parser.add_argument(
        "-u", "--username",
        type=str,
        required=True,
        help="User holding AUDIT:ANALYZE",
    )

    commands.add_parser("console", help="Start the interactive console")

    return parser.parse_args(argv)


def cmd_init_db(app: RbacApp) -> int:
    report = seed_defaults(app.directory, app.settings.ADMIN_PASSWORD, app.settings.BCRYPT_ROUNDS)
    print(
        f"✓ database ready: {report.permissions_created} permission(s), "
        f"{report.roles_created} role(s) created"
        + (", admin user created" if report.admin_created else "")
    )
    return 0


def cmd_reset(app: RbacApp, confirmed: bool) -> int:
    if not confirmed:
        answer = input("This deletes every non-seed user, role and permission. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("aborted")
            return 1

    report = reset(
        app.directory,
        app.settings.AUDIT_LOG_PATH,
        app.settings.ADMIN_PASSWORD,
        app.settings.BCRYPT_ROUNDS,
    )
    print(
        f"✓ reset complete: removed {report.principals_deleted} user(s), "
        f"{report.roles_deleted} role(s), {report.permissions_deleted} permission(s)"
    )
    return 0


def cmd_analyze(app: RbacApp, username: str) -> int:
    password = getpass.getpass("Password: ")
    with PrincipalContext() as context:
        app.auth.login(context, username, password)
        try:
            warnings = app.audit_analysis.analyze(context)
        finally:
            app.auth.logout(context)

    if not warnings:
        print("✓ no login anomalies found")
    for warning in warnings:
        print(f"! {warning}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = get_settings()

    setup_logging(args.log_level or settings.LOG_LEVEL)
    logger = logging.getLogger("rbac_guard.main")

    app = create_app(settings)
    try:
        if args.command == "init-db":
            return cmd_init_db(app)
        if args.command == "reset":
            return cmd_reset(app, args.yes)
        if args.command == "analyze":
            return cmd_analyze(app, args.username)
        return run_console(app)
    except RbacError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
