"""Data classes for the progress domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from brainbuddy.levels import level_for_xp


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Outcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"


class AchievementKind(str, Enum):
    STREAK = "streak"
    QUIZ_MASTERY = "quiz-mastery"
    ACCURACY = "accuracy"


class Rejection(str, Enum):
    """Reason codes for interactions refused without changing state."""
    PET_NOT_SELECTED = "pet_not_selected"
    PET_ALREADY_SELECTED = "pet_already_selected"
    FEED_COOLDOWN = "feed_cooldown"
    PLAY_COOLDOWN = "play_cooldown"
    QUIZ_COMPLETE = "quiz_complete"
    STALE_INDEX = "stale_index"
    INVALID_OPTION = "invalid_option"
    INVALID_NAME = "invalid_name"
    UNKNOWN_SPECIES = "unknown_species"
    INVALID_AMOUNT = "invalid_amount"


@dataclass
class ProgressSnapshot:
    xp: int = 0
    streak_days: int = 0
    level: int = 1

    def __post_init__(self):
        self.level = level_for_xp(self.xp)


@dataclass
class QuizItem:
    question: str
    options: list[str]
    correct_option: str
    xp_reward: int
    completed: bool = False


@dataclass
class PerformancePoint:
    outcome: Outcome
    score: float
    penalty: float = 0.0

    def to_dict(self) -> dict:
        return {"outcome": self.outcome.value, "score": self.score, "penalty": self.penalty}

    @classmethod
    def from_dict(cls, data: dict) -> "PerformancePoint":
        return cls(Outcome(data["outcome"]), float(data["score"]), float(data.get("penalty", 0)))


@dataclass
class QuizSession:
    current_index: int = 0
    answers: dict[int, str] = field(default_factory=dict)
    completed: bool = False
    performance_series: list[PerformancePoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "current_index": self.current_index,
            # JSON object keys are strings
            "answers": {str(k): v for k, v in self.answers.items()},
            "completed": self.completed,
            "performance_series": [p.to_dict() for p in self.performance_series],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizSession":
        return cls(
            current_index=int(data["current_index"]),
            answers={int(k): str(v) for k, v in data.get("answers", {}).items()},
            completed=bool(data.get("completed", False)),
            performance_series=[PerformancePoint.from_dict(p) for p in data.get("performance_series", [])],
        )


@dataclass
class PetState:
    species: Optional[str] = None
    name: Optional[str] = None
    level: int = 0
    experience: int = 0
    happiness: int = 100
    energy: int = 100
    last_fed_at: Optional[datetime] = None
    last_played_at: Optional[datetime] = None

    @property
    def selected(self) -> bool:
        return self.species is not None

    def to_dict(self) -> dict:
        return {
            "species": self.species,
            "name": self.name,
            "level": self.level,
            "experience": self.experience,
            "happiness": self.happiness,
            "energy": self.energy,
            "last_fed_at": _ts(self.last_fed_at),
            "last_played_at": _ts(self.last_played_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PetState":
        return cls(
            species=data.get("species"),
            name=data.get("name"),
            level=int(data.get("level", 0)),
            experience=int(data.get("experience", 0)),
            happiness=int(data.get("happiness", 100)),
            energy=int(data.get("energy", 100)),
            last_fed_at=_parse_ts(data.get("last_fed_at")),
            last_played_at=_parse_ts(data.get("last_played_at")),
        )


@dataclass(frozen=True)
class Achievement:
    id: str
    kind: AchievementKind
    title: str
    description: str
    icon: str
    earned_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "earned_at": self.earned_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Achievement":
        return cls(
            id=data["id"],
            kind=AchievementKind(data["kind"]),
            title=data["title"],
            description=data["description"],
            icon=data["icon"],
            earned_at=datetime.fromisoformat(data["earned_at"]),
        )


@dataclass
class Badge:
    name: str
    icon: str
    requirement_description: str
    earned: bool = False
    earned_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "earned": self.earned, "earned_at": _ts(self.earned_at)}


@dataclass
class ActionResult:
    ok: bool
    reason: Optional[Rejection] = None
    xp_awarded: int = 0
    message: str = ""

    @classmethod
    def rejected(cls, reason: Rejection, message: str = "") -> "ActionResult":
        return cls(ok=False, reason=reason, message=message)
