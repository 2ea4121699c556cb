"""
Scheduled tasks for partsdesk.

Uses APScheduler BackgroundScheduler to refresh the configured FX pairs.
Only one worker starts the scheduler (file-lock guard) so the rate API is
called once per interval, not once per worker.
"""

import os
import atexit
import fcntl
from apscheduler.schedulers.background import BackgroundScheduler

from core.config import config
from core.utils.logging_config import get_logger

logger = get_logger('partsdesk.tasks.scheduler')

scheduler = BackgroundScheduler(daemon=True)
_lock_file = None


def refresh_fx_rates(fx_service, pairs):
    """Force-refresh every configured pair into the service's cache and the DB."""
    try:
        refreshed = fx_service.refresh_pairs(pairs)
        logger.info(f"FX refresh: {refreshed}/{len(pairs)} pairs updated")
    except Exception as e:
        logger.error(f"FX refresh task failed: {e}")


def _acquire_scheduler_lock():
    """Try to acquire an exclusive file lock. Returns True if this process won."""
    global _lock_file
    try:
        lock_path = os.path.join(os.path.dirname(__file__), '..', '.scheduler.lock')
        _lock_file = open(lock_path, 'w')
        fcntl.flock(_lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        _lock_file.write(str(os.getpid()))
        _lock_file.flush()
        return True
    except (IOError, OSError):
        if _lock_file:
            _lock_file.close()
            _lock_file = None
        return False


def start_scheduler(fx_service, pairs=None, interval_seconds=None):
    """Start the background scheduler with the FX refresh job.

    No-op when no pairs are configured or another worker holds the lock.
    """
    if scheduler.running:
        return False

    pairs = list(pairs if pairs is not None else config.FX_REFRESH_PAIRS)
    if not pairs:
        logger.debug('No FX_REFRESH_PAIRS configured, scheduler not started')
        return False

    if not _acquire_scheduler_lock():
        logger.debug(f"Scheduler lock held by another worker, skipping (pid={os.getpid()})")
        return False

    scheduler.add_job(
        refresh_fx_rates,
        'interval',
        seconds=interval_seconds or config.FX_CACHE_TTL,
        args=[fx_service, pairs],
        id='fx_rates_refresh',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))
    logger.info(f"Background scheduler started (pid={os.getpid()}, {len(pairs)} FX pairs)")
    return True


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
