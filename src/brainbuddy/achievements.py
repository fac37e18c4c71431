"""Achievement and badge unlocks derived from the learner's current progress.

Evaluation is a pure function of the signals passed in plus what is already
unlocked: running it twice with the same signals unlocks nothing new, and no
unlock is ever revoked by evaluation. Only reset() (the manual quiz reset)
clears the log.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from brainbuddy.models import Achievement, AchievementKind, Badge
from brainbuddy.store import KeyValueStore

logger = logging.getLogger(__name__)

ACHIEVEMENTS_KEY = "achievements"
BADGES_KEY = "badges"

STREAK_DAYS_REQUIRED = 7
ACCURACY_REQUIRED = 0.9
MASTER_LEVEL = 10
DIAMOND_XP = 1000

ACHIEVEMENT_CATALOG = {
    AchievementKind.STREAK: {
        "id": "streak-7",
        "title": "7-Day Streak",
        "description": "Keep it burning!",
        "icon": "🔥",
    },
    AchievementKind.QUIZ_MASTERY: {
        "id": "quiz-master",
        "title": "Quiz Master",
        "description": "Finished every question of the daily quiz",
        "icon": "🧠",
    },
    AchievementKind.ACCURACY: {
        "id": "perfect-score",
        "title": "Perfect Score",
        "description": "90% or better quiz accuracy",
        "icon": "🎯",
    },
}

# (name, icon, requirement) in display order
BADGE_CATALOG = [
    ("Streak", "🔥", "Reach a 7-day streak"),
    ("Scholar", "📚", "Complete a daily quiz"),
    ("Speed", "⚡", "Complete 5 quiz sessions in one day"),
    ("Accuracy", "🎯", "Keep 90% quiz accuracy"),
    ("Master", "🌟", "Reach level 10"),
    ("Diamond", "💎", "Earn 1000 XP"),
]


@dataclass
class AchievementSignals:
    streak_days: int
    quiz_complete: bool
    accuracy: Optional[float]
    level: int
    xp: int


@dataclass
class Unlock:
    kind: str  # "achievement" or "badge"
    name: str
    icon: str


def new_badges() -> dict[str, Badge]:
    return {name: Badge(name, icon, requirement) for name, icon, requirement in BADGE_CATALOG}


class AchievementEngine:
    def __init__(self, store: KeyValueStore, user_id: str):
        self.store = store
        self.user_id = user_id
        self.log: list[Achievement] = []
        self.badges = new_badges()

    def load(self) -> None:
        self.log = self.store.read_as(
            self.user_id, ACHIEVEMENTS_KEY, self._parse_log, [],
        )
        self.badges = self.store.read_as(
            self.user_id, BADGES_KEY, self._parse_badges, new_badges(),
        )

    @staticmethod
    def _parse_log(raw: list) -> list[Achievement]:
        log, seen = [], set()
        for entry in raw:
            achievement = Achievement.from_dict(entry)
            if achievement.kind not in seen:
                seen.add(achievement.kind)
                log.append(achievement)
        return log

    @staticmethod
    def _parse_badges(raw: dict) -> dict[str, Badge]:
        badges = new_badges()
        for name, flags in raw.items():
            if name in badges and flags.get("earned"):
                badges[name].earned = True
                earned_at = flags.get("earned_at")
                badges[name].earned_at = datetime.fromisoformat(earned_at) if earned_at else None
        return badges

    def save(self) -> None:
        self.store.write(self.user_id, ACHIEVEMENTS_KEY, [a.to_dict() for a in self.log])
        self.store.write(self.user_id, BADGES_KEY, {name: b.to_dict() for name, b in self.badges.items()})

    def has(self, kind: AchievementKind) -> bool:
        return any(a.kind is kind for a in self.log)

    @staticmethod
    def _accurate(signals: AchievementSignals) -> bool:
        return signals.accuracy is not None and signals.accuracy >= ACCURACY_REQUIRED

    def evaluate(self, signals: AchievementSignals, now: datetime) -> list[Unlock]:
        """Unlock whatever the signals now qualify for; returns only new unlocks."""
        unlocks = []
        conditions = {
            AchievementKind.STREAK: signals.streak_days >= STREAK_DAYS_REQUIRED,
            AchievementKind.QUIZ_MASTERY: signals.quiz_complete,
            AchievementKind.ACCURACY: self._accurate(signals),
        }
        for kind, met in conditions.items():
            if met and not self.has(kind):
                entry = ACHIEVEMENT_CATALOG[kind]
                self.log.append(Achievement(
                    id=entry["id"], kind=kind, title=entry["title"],
                    description=entry["description"], icon=entry["icon"], earned_at=now,
                ))
                unlocks.append(Unlock("achievement", entry["title"], entry["icon"]))
                logger.info(f"Achievement unlocked for {self.user_id}: {entry['title']}")

        badge_conditions = {
            "Streak": self.has(AchievementKind.STREAK),
            "Scholar": self.has(AchievementKind.QUIZ_MASTERY),
            # Speed needs a same-day session counter that nothing records yet
            "Speed": False,
            "Accuracy": self._accurate(signals),
            "Master": signals.level >= MASTER_LEVEL,
            "Diamond": signals.xp >= DIAMOND_XP,
        }
        for name, met in badge_conditions.items():
            badge = self.badges[name]
            if met and not badge.earned:
                badge.earned = True
                badge.earned_at = now
                unlocks.append(Unlock("badge", name, badge.icon))
                logger.info(f"Badge earned for {self.user_id}: {name}")

        if unlocks:
            self.save()
        return unlocks

    def reset(self) -> None:
        self.log = []
        self.badges = new_badges()
        self.save()
