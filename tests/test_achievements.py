# tests/test_achievements.py
import pytest

from brainbuddy.achievements import AchievementEngine, AchievementSignals, BADGE_CATALOG
from brainbuddy.models import AchievementKind


def signals(**overrides):
    base = dict(streak_days=0, quiz_complete=False, accuracy=None, level=1, xp=0)
    base.update(overrides)
    return AchievementSignals(**base)


@pytest.fixture
def achievements(store):
    engine = AchievementEngine(store, "alice")
    engine.load()
    return engine


def test_nothing_unlocked_for_fresh_learner(achievements, clock):
    assert achievements.evaluate(signals(), clock()) == []
    assert achievements.log == []
    assert not any(b.earned for b in achievements.badges.values())


def test_badges_listed_in_display_order(achievements):
    assert list(achievements.badges) == [name for name, _, _ in BADGE_CATALOG]


def test_seven_day_streak_unlocks_streak_achievement_and_badge(achievements, clock):
    unlocks = achievements.evaluate(signals(streak_days=7), clock())
    assert [(u.kind, u.name) for u in unlocks] == [("achievement", "7-Day Streak"), ("badge", "Streak")]
    assert achievements.has(AchievementKind.STREAK)
    assert achievements.log[0].earned_at == clock()


def test_six_days_is_not_enough(achievements, clock):
    assert achievements.evaluate(signals(streak_days=6), clock()) == []


def test_quiz_complete_unlocks_quiz_master_and_scholar(achievements, clock):
    unlocks = achievements.evaluate(signals(quiz_complete=True), clock())
    assert {u.name for u in unlocks} == {"Quiz Master", "Scholar"}


def test_accuracy_threshold(achievements, clock):
    assert achievements.evaluate(signals(accuracy=0.89), clock()) == []
    unlocks = achievements.evaluate(signals(accuracy=0.9), clock())
    assert {u.name for u in unlocks} == {"Perfect Score", "Accuracy"}


def test_level_and_xp_badges(achievements, clock):
    unlocks = achievements.evaluate(signals(level=10, xp=999), clock())
    assert [u.name for u in unlocks] == ["Master"]
    unlocks = achievements.evaluate(signals(level=11, xp=1000), clock())
    assert [u.name for u in unlocks] == ["Diamond"]


def test_evaluation_is_idempotent(achievements, clock):
    everything = signals(streak_days=9, quiz_complete=True, accuracy=1.0, level=12, xp=1500)
    first = achievements.evaluate(everything, clock())
    assert len(first) == 3 + 5
    assert achievements.evaluate(everything, clock()) == []
    assert len(achievements.log) == 3


def test_unlocks_are_never_revoked(achievements, clock):
    achievements.evaluate(signals(streak_days=7, accuracy=1.0), clock())
    achievements.evaluate(signals(streak_days=0, accuracy=0.1), clock())
    assert achievements.has(AchievementKind.STREAK)
    assert achievements.has(AchievementKind.ACCURACY)
    assert achievements.badges["Accuracy"].earned is True


def test_speed_badge_is_never_earned(achievements, clock):
    achievements.evaluate(signals(streak_days=30, quiz_complete=True, accuracy=1.0, level=20, xp=5000), clock())
    assert achievements.badges["Speed"].earned is False


def test_unlocks_persist(store, achievements, clock):
    achievements.evaluate(signals(quiz_complete=True, level=10), clock())
    reloaded = AchievementEngine(store, "alice")
    reloaded.load()
    assert [a.title for a in reloaded.log] == ["Quiz Master"]
    assert reloaded.badges["Scholar"].earned is True
    assert reloaded.badges["Scholar"].earned_at == clock()
    assert reloaded.badges["Master"].earned is True


def test_duplicate_kinds_in_stored_log_are_collapsed(store, achievements, clock):
    achievements.evaluate(signals(quiz_complete=True), clock())
    entry = achievements.log[0].to_dict()
    store.write("alice", "achievements", [entry, entry])
    reloaded = AchievementEngine(store, "alice")
    reloaded.load()
    assert len(reloaded.log) == 1


def test_reset_clears_everything(store, achievements, clock):
    achievements.evaluate(signals(streak_days=7, quiz_complete=True), clock())
    achievements.reset()
    assert achievements.log == []
    assert not any(b.earned for b in achievements.badges.values())
    reloaded = AchievementEngine(store, "alice")
    reloaded.load()
    assert reloaded.log == []
