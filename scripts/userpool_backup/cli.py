"""CLI entry point: backup, restore, scheduler."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from scripts.userpool_backup.client import create_cognito_client
from scripts.userpool_backup.config import OUTPUT_FORMATS, UserPoolBackupConfig, load_config
from scripts.userpool_backup.enumerator import backup_users
from scripts.userpool_backup.errors import UserPoolBackupError
from scripts.userpool_backup.importer import restore_users
from scripts.userpool_backup.logging_config import configure_logging
from scripts.userpool_backup.password_module import load_password_resolver
from scripts.userpool_backup.rate_limiter import RateLimiter
from scripts.userpool_backup.secrets import is_secret_reference, resolve_secret

logger = logging.getLogger("userpool_backup.cli")


def _client_from_args(args: argparse.Namespace, config: UserPoolBackupConfig):
    return create_cognito_client(
        region=args.region or config.aws.region,
        profile=args.profile or (None if args.key else config.aws.profile),
        access_key=args.key,
        secret_key=args.secret,
    )


def _pick(value, default):
    return default if value is None else value


def cmd_backup(args: argparse.Namespace) -> None:
    """Export one pool, or all pools, into a directory."""
    config = load_config()
    cfg = config.backup
    client = _client_from_args(args, config)

    results = backup_users(
        client,
        user_pool_id=_pick(args.userpool, cfg.user_pool_id),
        directory=_pick(args.directory, cfg.directory),
        output_format=_pick(args.output_format, cfg.output_format),
        delay_ms=_pick(args.delay, cfg.delay_ms),
        with_groups=args.groups or cfg.with_groups,
        page_size=cfg.page_size,
        continue_on_error=args.continue_on_error or cfg.continue_on_error,
        follow_pool_pagination=args.all_pool_pages or cfg.follow_pool_pagination,
    )
    logger.info("Backup results: %s", results, extra={"records": sum(results.values())})


def cmd_restore(args: argparse.Namespace) -> None:
    """Import users from a backup file into a single pool."""
    config = load_config()
    cfg = config.restore

    user_pool_id = args.userpool or config.backup.user_pool_id
    module_ref = _pick(args.password_module, cfg.password_module)
    # Fail on a bad module before touching Cognito
    resolver = load_password_resolver(module_ref) if module_ref else None
    password_ref = args.password or cfg.temporary_password
    password = None
    if password_ref:
        if is_secret_reference(password_ref):
            logger.info("Resolving temporary password from secret reference")
        password = resolve_secret(password_ref, args.region or config.aws.region)

    client = _client_from_args(args, config)
    results = restore_users(
        client,
        user_pool_id=user_pool_id,
        path=args.file,
        password=password,
        password_resolver=resolver,
        replicate_groups=args.groups or cfg.replicate_groups,
        limiter=RateLimiter(_pick(args.interval_ms, cfg.min_interval_ms)),
    )
    logger.info("Restore results: %s", results, extra={"user_pool_id": user_pool_id})


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the APScheduler-based backup loop."""
    from scripts.userpool_backup.scheduler import start_scheduler

    config = load_config()
    start_scheduler(config, _client_from_args(args, config))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userpool-backup",
        description="Back up and restore Cognito user pools",
    )
    parser.add_argument("--profile", "-p", help="AWS profile from the shared credentials file")
    parser.add_argument("--region", "-r", help="AWS region of the user pool(s)")
    parser.add_argument("--key", "-k", help="AWS access key id")
    parser.add_argument("--secret", "-s", help="AWS secret access key")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    backup_parser = subparsers.add_parser("backup", help="Export all users of a pool")
    backup_parser.add_argument(
        "--userpool", "--pool",
        help="User pool id, or 'all' to back up every pool in the region",
    )
    backup_parser.add_argument("--directory", "--dir", help="Directory to write backup files to")
    backup_parser.add_argument(
        "--format", "-o",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        help="Backup file format (default: json)",
    )
    backup_parser.add_argument(
        "--delay",
        type=int,
        help="Milliseconds to wait between ListUsers pages, to avoid rate limit errors",
    )
    backup_parser.add_argument("--groups", action="store_true", help="Include group memberships")
    backup_parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="With 'all', keep exporting the remaining pools when one fails",
    )
    backup_parser.add_argument(
        "--all-pool-pages",
        action="store_true",
        help="With 'all', follow ListUserPools pagination past the first 60 pools",
    )
    backup_parser.set_defaults(func=cmd_backup)

    # restore command
    restore_parser = subparsers.add_parser("restore", help="Import users into a single pool")
    restore_parser.add_argument("--userpool", "--pool", help="Target user pool id")
    restore_parser.add_argument(
        "--file", "-f", required=True, help="Backup file to import (.json or .csv)"
    )
    restore_parser.add_argument(
        "--password", "--pwd",
        help="Temporary password for imported users (literal or secret reference)",
    )
    restore_parser.add_argument(
        "--password-module", "--pwd-module",
        help="module[:function] exposing get_password_for_username(username)",
    )
    restore_parser.add_argument(
        "--interval-ms",
        type=int,
        help="Minimum milliseconds between AdminCreateUser calls (default: 2000)",
    )
    restore_parser.add_argument("--groups", action="store_true", help="Re-add users to their groups")
    restore_parser.set_defaults(func=cmd_restore)

    # scheduler command
    sched_parser = subparsers.add_parser("scheduler", help="Run backups on an interval")
    sched_parser.set_defaults(func=cmd_scheduler)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        args.func(args)
    except (UserPoolBackupError, ClientError, BotoCoreError, ValueError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
