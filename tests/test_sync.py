# tests/test_sync.py
import logging
from unittest.mock import MagicMock

import pytest

from brainbuddy.client import ProgressServiceClient, RemoteProgress
from brainbuddy.exceptions import ProgressServiceError, ProgressServiceUnauthorized
from brainbuddy.models import ProgressSnapshot
from brainbuddy.sync import SYNC_NOW_TASK, ProgressSynchronizer, merge_progress
from brainbuddy.timers import Scheduler


class Local:
    """In-memory stand-in for the engine's progress fields."""

    def __init__(self, xp=0, streak_days=0):
        self.snapshot = ProgressSnapshot(xp=xp, streak_days=streak_days)
        self.merges = []

    def __call__(self):
        return self.snapshot

    def apply(self, merged):
        self.merges.append(merged)
        self.snapshot = merged


def make_client(xp=0, streak=0, token="t"):
    client = MagicMock(spec=ProgressServiceClient)
    client.has_credential.return_value = token is not None
    client.fetch_progress.return_value = RemoteProgress(xp=xp, streak_days=streak)
    return client


def make_sync(client, local, loaded=True):
    sync = ProgressSynchronizer(client, local, local.apply)
    if loaded:
        sync.mark_loaded()
    return sync


def test_merge_takes_maximum_per_field():
    merged = merge_progress(ProgressSnapshot(xp=80, streak_days=5), RemoteProgress(xp=150, streak_days=2))
    assert (merged.xp, merged.streak_days, merged.level) == (150, 5, 2)


def test_merge_is_idempotent():
    local = ProgressSnapshot(xp=120, streak_days=3)
    remote = RemoteProgress(xp=90, streak_days=8)
    once = merge_progress(local, remote)
    twice = merge_progress(once, remote)
    assert once == twice


def test_lower_remote_does_not_regress_local():
    local = Local(xp=80)
    sync = make_sync(make_client(xp=50), local)
    assert sync.apply_remote(RemoteProgress(xp=50, streak_days=0)) is False
    assert local.snapshot.xp == 80
    assert local.merges == []


def test_higher_remote_raises_local():
    local = Local(xp=80, streak_days=1)
    sync = make_sync(make_client(), local)
    assert sync.apply_remote(RemoteProgress(xp=250, streak_days=4)) is True
    assert (local.snapshot.xp, local.snapshot.streak_days, local.snapshot.level) == (250, 4, 3)


def test_remote_held_until_loaded():
    local = Local(xp=0)
    sync = make_sync(make_client(), local, loaded=False)
    sync.apply_remote(RemoteProgress(xp=30, streak_days=5))
    sync.apply_remote(RemoteProgress(xp=70, streak_days=1))
    assert local.merges == []
    local.snapshot = ProgressSnapshot(xp=60, streak_days=2)
    sync.mark_loaded()
    assert (local.snapshot.xp, local.snapshot.streak_days) == (70, 5)
    assert len(local.merges) == 1


def test_sync_pulls_then_pushes():
    client = make_client(xp=40, streak=2)
    local = Local(xp=120, streak_days=1)
    report = make_sync(client, local).sync()
    assert report.error is None
    assert report.pulled == RemoteProgress(40, 2)
    assert report.merged is True
    assert report.pushed is True
    client.push_xp.assert_called_once_with(120)
    client.push_streak.assert_called_once_with(2)
    client.push_level.assert_called_once_with(2)


def test_sync_never_pushes_below_remote():
    client = make_client(xp=500)
    local = Local(xp=80)
    make_sync(client, local).sync()
    client.push_xp.assert_called_once_with(500)


def test_push_skipped_for_empty_progress():
    client = make_client()
    report = make_sync(client, Local()).sync()
    assert report.pushed is False
    client.push_xp.assert_not_called()


def test_sync_without_credential_is_skipped():
    client = make_client(token=None)
    report = make_sync(client, Local(xp=10)).sync()
    assert report.skipped == "no credential"
    client.fetch_progress.assert_not_called()


def test_sync_without_client_is_skipped():
    assert make_sync(None, Local()).sync().skipped == "no credential"


def test_sync_while_loading_is_skipped():
    client = make_client()
    report = make_sync(client, Local(), loaded=False).sync()
    assert report.skipped == "loading"
    client.fetch_progress.assert_not_called()


@pytest.mark.parametrize("error", [ProgressServiceError("boom"), ProgressServiceUnauthorized("expired")])
def test_sync_failure_is_logged_and_local_kept(caplog, error):
    client = make_client()
    client.fetch_progress.side_effect = error
    local = Local(xp=80)
    with caplog.at_level(logging.WARNING, logger="brainbuddy.sync"):
        report = make_sync(client, local).sync()
    assert report.error == str(error)
    assert local.snapshot.xp == 80
    assert "will retry later" in caplog.text


def test_push_failure_keeps_merged_values():
    client = make_client(xp=300)
    client.push_xp.side_effect = ProgressServiceError("down")
    local = Local(xp=80)
    report = make_sync(client, local).sync()
    assert report.merged is True
    assert report.error == "down"
    assert local.snapshot.xp == 300


def test_refresh_stats():
    client = make_client()
    client.fetch_stats.return_value = {"xp": 12}
    sync = make_sync(client, Local())
    assert sync.refresh_stats() == {"xp": 12}
    assert sync.remote_stats == {"xp": 12}


def test_refresh_stats_failure_keeps_last_value():
    client = make_client()
    client.fetch_stats.return_value = {"xp": 12}
    sync = make_sync(client, Local())
    sync.refresh_stats()
    client.fetch_stats.side_effect = ProgressServiceError("down")
    assert sync.refresh_stats() is None
    assert sync.remote_stats == {"xp": 12}


def test_start_registers_timers_and_stop_cancels():
    scheduler = Scheduler(clock=lambda: 0.0)
    sync = make_sync(make_client(), Local())
    sync.start(scheduler, sync_interval=300, stats_interval=30)
    assert scheduler.scheduled() == ["stats", "sync"]
    sync.request_sync()
    assert SYNC_NOW_TASK in scheduler.scheduled()
    sync.stop()
    assert scheduler.scheduled() == []


def test_periodic_sync_runs_from_scheduler():
    client = make_client(xp=10)
    scheduler = Scheduler(clock=lambda: 0.0)
    local = Local()
    sync = make_sync(client, local)
    sync.start(scheduler, sync_interval=300, stats_interval=30)
    assert scheduler.run_pending(now=0) == ["sync", "stats"]
    assert local.snapshot.xp == 10
    assert client.fetch_stats.call_count == 1
    assert scheduler.run_pending(now=30) == ["stats"]
    assert scheduler.run_pending(now=300) == ["stats", "sync"]
    assert client.fetch_progress.call_count == 2


def test_request_sync_without_scheduler_is_ignored():
    sync = make_sync(make_client(), Local())
    sync.request_sync()
