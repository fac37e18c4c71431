"""Reconcile local progress with the remote Progress Service.

The merge is monotonic: xp and streak each take the larger of the local and
remote values, and level is recomputed from the merged xp. A late or stale
response can therefore never take progress away.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from brainbuddy.client import ProgressServiceClient, RemoteProgress
from brainbuddy.config import STATS_INTERVAL_SECONDS, SYNC_INTERVAL_SECONDS
from brainbuddy.exceptions import ProgressServiceError, ProgressServiceUnauthorized
from brainbuddy.models import ProgressSnapshot
from brainbuddy.timers import Scheduler

logger = logging.getLogger(__name__)

SYNC_TASK = "sync"
SYNC_NOW_TASK = "sync-now"
STATS_TASK = "stats"


def merge_progress(local: ProgressSnapshot, remote: RemoteProgress) -> ProgressSnapshot:
    return ProgressSnapshot(
        xp=max(local.xp, remote.xp),
        streak_days=max(local.streak_days, remote.streak_days),
    )


@dataclass
class SyncReport:
    skipped: Optional[str] = None
    pulled: Optional[RemoteProgress] = None
    merged: bool = False
    pushed: bool = False
    error: Optional[str] = None


class ProgressSynchronizer:
    def __init__(
        self,
        client: Optional[ProgressServiceClient],
        local: Callable[[], ProgressSnapshot],
        on_merged: Callable[[ProgressSnapshot], None],
    ):
        self.client = client
        self.local = local
        self.on_merged = on_merged
        self.loaded = False
        self.remote_stats: dict = {}
        self._pending: Optional[RemoteProgress] = None
        self._scheduler: Optional[Scheduler] = None

    # --- lifecycle ---

    def start(self, scheduler: Scheduler, sync_interval: float = SYNC_INTERVAL_SECONDS,
              stats_interval: float = STATS_INTERVAL_SECONDS) -> None:
        self._scheduler = scheduler
        scheduler.every(SYNC_TASK, sync_interval, self.sync, run_immediately=True)
        scheduler.every(STATS_TASK, stats_interval, self.refresh_stats, run_immediately=True)

    def stop(self) -> None:
        if self._scheduler is not None:
            for name in (SYNC_TASK, SYNC_NOW_TASK, STATS_TASK):
                self._scheduler.cancel(name)
            self._scheduler = None

    def request_sync(self) -> None:
        """Sync on the next scheduler pass (after a level-up or finished quiz)."""
        if self._scheduler is not None:
            self._scheduler.call_soon(SYNC_NOW_TASK, self.sync)

    def mark_loaded(self) -> None:
        """Local fields are all read; apply any remote progress that arrived meanwhile."""
        self.loaded = True
        pending, self._pending = self._pending, None
        if pending is not None:
            self.apply_remote(pending)

    def available(self) -> bool:
        return self.client is not None and self.client.has_credential()

    # --- reconciliation ---

    def apply_remote(self, remote: RemoteProgress) -> bool:
        """Merge remote into local. Returns True if local progress changed."""
        if not self.loaded:
            if self._pending is not None:
                remote = RemoteProgress(
                    xp=max(remote.xp, self._pending.xp),
                    streak_days=max(remote.streak_days, self._pending.streak_days),
                )
            self._pending = remote
            logger.debug("Holding remote progress until local state is loaded")
            return False
        local = self.local()
        merged = merge_progress(local, remote)
        if (merged.xp, merged.streak_days) == (local.xp, local.streak_days):
            return False
        logger.info(
            f"Remote progress raised local values: xp {local.xp}->{merged.xp}, "
            f"streak {local.streak_days}->{merged.streak_days}"
        )
        self.on_merged(merged)
        return True

    def pull(self) -> RemoteProgress:
        remote = self.client.fetch_progress()
        self.apply_remote(remote)
        return remote

    def push(self) -> bool:
        """Report local progress; nothing is sent while it is all zero."""
        snapshot = self.local()
        # level is never below 1, so only xp and streak decide
        if not (snapshot.xp > 0 or snapshot.streak_days > 0):
            return False
        self.client.push_xp(snapshot.xp)
        self.client.push_level(snapshot.level)
        self.client.push_streak(snapshot.streak_days)
        return True

    def sync(self) -> SyncReport:
        """One reconciliation round.

        Pulls and merges before pushing, so what gets pushed is never below
        what the service already holds. Failures are logged and left for the
        next timer tick.
        """
        if not self.available():
            logger.debug("Skipping sync: no session credential")
            return SyncReport(skipped="no credential")
        if not self.loaded:
            return SyncReport(skipped="loading")
        report = SyncReport()
        try:
            report.pulled = self.client.fetch_progress()
            report.merged = self.apply_remote(report.pulled)
            report.pushed = self.push()
        except ProgressServiceUnauthorized as e:
            logger.warning(f"Progress Service refused the credential, will retry later: {e}")
            report.error = str(e)
        except ProgressServiceError as e:
            logger.warning(f"Progress sync failed, will retry later: {e}")
            report.error = str(e)
        return report

    def refresh_stats(self) -> Optional[dict]:
        """Fetch server-reported stats for display; never merged into progress."""
        if not self.available():
            return None
        try:
            self.remote_stats = self.client.fetch_stats()
        except ProgressServiceError as e:
            logger.warning(f"Could not refresh remote stats: {e}")
            return None
        return self.remote_stats
