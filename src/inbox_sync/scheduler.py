"""Periodic scheduler that runs due per-user sync passes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from .core.config import SchedulerSettings
from .core.container import ServiceContainer
from .core.datetime_utils import ensure_utc, utc_now
from .core.interfaces import SyncRepository
from .core.models import TickReport, UserSyncSetting
from .ingestion.synchronizer import MailboxSynchronizer

LOGGER = logging.getLogger(__name__)

TICK_JOB_ID = "inbox_sync_tick"


def is_due(setting: UserSyncSetting, now: datetime) -> bool:
    """Return ``True`` when ``setting``'s cadence has elapsed at ``now``."""
    if setting.interval_minutes <= 0:
        return False
    last_run_at = ensure_utc(setting.last_run_at)
    if last_run_at is None:
        return True
    return ensure_utc(now) - last_run_at >= timedelta(minutes=setting.interval_minutes)


class SyncScheduler:
    """Scan enabled sync settings each tick and sync users whose cadence elapsed.

    Only one tick runs at a time per instance; an overlapping call returns a
    report flagged ``skipped``. Single-process only: two processes each
    running a scheduler against the same database are not coordinated.
    """

    def __init__(
        self,
        repository: SyncRepository,
        synchronizer: MailboxSynchronizer,
        settings: SchedulerSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialise the scheduler; nothing runs until ``start`` or ``tick``."""
        self._repository = repository
        self._synchronizer = synchronizer
        self._settings = settings
        self._clock = clock
        self._lock = threading.Lock()
        self._running = False
        self._background: BackgroundScheduler | None = None

    @property
    def is_ticking(self) -> bool:
        """Whether a tick is currently in progress."""
        with self._lock:
            return self._running

    @property
    def started(self) -> bool:
        """Whether the periodic background job is active."""
        return self._background is not None and self._background.running

    def tick(self, now: datetime | None = None) -> TickReport:
        """Run one scan; a no-op while another tick is still running."""
        with self._lock:
            if self._running:
                LOGGER.debug("Previous tick still running; skipping")
                return TickReport(skipped=True)
            self._running = True
        try:
            return self._run_tick(now or self._clock())
        finally:
            with self._lock:
                self._running = False

    def start(self) -> None:
        """Register the tick as an interval job and start the background loop."""
        if self.started:
            return
        background = BackgroundScheduler(timezone=UTC)
        background.add_job(
            self.tick,
            "interval",
            seconds=self._settings.tick_seconds,
            id=TICK_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        background.start()
        self._background = background
        LOGGER.info(
            "Email sync scheduler started (every %s seconds)",
            self._settings.tick_seconds,
        )

    def shutdown(self, wait: bool = False) -> None:
        """Stop the background loop if it was started."""
        if self._background is None:
            return
        if self._background.running:
            self._background.shutdown(wait=wait)
        self._background = None
        LOGGER.info("Email sync scheduler stopped")

    def _run_tick(self, now: datetime) -> TickReport:
        report = TickReport()
        for setting in self._repository.list_enabled_sync_settings():
            report.users_checked += 1
            if not is_due(setting, now):
                continue
            user = self._repository.get_user(setting.user_id)
            if user is None:
                LOGGER.warning("Sync setting references missing user %s", setting.user_id)
                continue

            LOGGER.info("Running scheduled sync for user %s", user.id)
            try:
                results = self._synchronizer.sync_mailboxes_for_user(user)
            except Exception:  # noqa: BLE001  # pylint: disable=broad-exception-caught
                LOGGER.error("Scheduled sync failed for user %s", user.id, exc_info=True)
                report.users_failed += 1
            else:
                report.users_synced += 1
                failures = [result for result in results if result.error]
                if failures:
                    LOGGER.warning(
                        "User %s: %s of %s mailbox(es) failed",
                        user.id,
                        len(failures),
                        len(results),
                    )

            # Advanced on failure too, so a broken account waits for its next cadence.
            try:
                self._repository.mark_sync_run(setting.user_id, setting.org_id, now)
            except Exception:  # noqa: BLE001  # pylint: disable=broad-exception-caught
                LOGGER.error(
                    "Could not record sync run for user %s", user.id, exc_info=True
                )
        LOGGER.debug(
            "Tick complete: %s checked, %s synced, %s failed",
            report.users_checked,
            report.users_synced,
            report.users_failed,
        )
        return report


_SCHEDULER: SyncScheduler | None = None
_SCHEDULER_LOCK = threading.Lock()


def init_scheduler(container: ServiceContainer) -> SyncScheduler:
    """Start the process-wide scheduler once; later calls return the same one."""
    global _SCHEDULER  # pylint: disable=global-statement
    with _SCHEDULER_LOCK:
        if _SCHEDULER is None:
            _SCHEDULER = container.resolve("scheduler")
            _SCHEDULER.start()
        return _SCHEDULER


def shutdown_scheduler() -> None:
    """Stop and forget the process-wide scheduler."""
    global _SCHEDULER  # pylint: disable=global-statement
    with _SCHEDULER_LOCK:
        if _SCHEDULER is not None:
            _SCHEDULER.shutdown()
            _SCHEDULER = None


__all__ = [
    "SyncScheduler",
    "TICK_JOB_ID",
    "init_scheduler",
    "is_due",
    "shutdown_scheduler",
]
