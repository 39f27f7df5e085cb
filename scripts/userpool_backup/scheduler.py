"""APScheduler-based interval scheduling for pool backups."""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from scripts.userpool_backup.config import UserPoolBackupConfig
from scripts.userpool_backup.enumerator import backup_users
from scripts.userpool_backup.errors import UserPoolBackupError

logger = logging.getLogger("userpool_backup.scheduler")


def run_backup_job(
    config: UserPoolBackupConfig,
    client,
    backoff_base: int = 30,
    sleep=time.sleep,
) -> dict[str, int] | None:
    """Back up into a fresh timestamped directory, retrying failed runs."""
    cfg = config.backup
    max_retries = config.scheduler.max_retries
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    directory = os.path.join(cfg.directory, stamp)

    for attempt in range(max_retries + 1):
        try:
            results = backup_users(
                client,
                user_pool_id=cfg.user_pool_id,
                directory=directory,
                output_format=cfg.output_format,
                delay_ms=cfg.delay_ms,
                with_groups=cfg.with_groups,
                page_size=cfg.page_size,
                continue_on_error=cfg.continue_on_error,
                follow_pool_pagination=cfg.follow_pool_pagination,
            )
            logger.info("Scheduled backup into %s complete: %s", directory, results,
                        extra={"records": sum(results.values())})
            return results
        except UserPoolBackupError as exc:
            if attempt < max_retries:
                delay = backoff_base * (2 ** attempt)
                logger.warning(
                    "Backup failed (attempt %d/%d), retrying in %ds: %s",
                    attempt + 1, max_retries, delay, exc,
                )
                sleep(delay)
            else:
                logger.error("Backup failed after %d retries: %s", max_retries, exc)
    return None


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def start_scheduler(config: UserPoolBackupConfig, client) -> None:
    """Start the blocking scheduler with one interval backup job."""
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    sched = config.scheduler

    scheduler.add_job(
        run_backup_job,
        "interval",
        hours=sched.backup_interval_hours,
        args=[config, client],
        id="userpool_backup",
        max_instances=1,
        misfire_grace_time=sched.misfire_grace_time,
        next_run_time=datetime.now(timezone.utc),
    )

    logger.info("Starting scheduler with jobs: %s",
                [j.id for j in scheduler.get_jobs()])
    scheduler.start()
