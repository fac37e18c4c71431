"""The per-user progress engine.

ProgressEngine owns every piece of a learner's client-side progress: XP and
streak, the daily quiz, the pet, and the achievement/badge log. All mutation
goes through its action methods, each of which runs to completion:

    1. apply the transition (quiz answer, feed, play, ...)
    2. credit XP and recompute the level, emitting at most one level-up
    3. persist the fields that changed
    4. run one achievement pass over the new values

Remote reconciliation runs from the scheduler between actions, never inside one.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from brainbuddy.achievements import AchievementEngine, AchievementSignals, Unlock
from brainbuddy.client import ProgressServiceClient
from brainbuddy.config import Settings
from brainbuddy.content import load_daily_quiz, load_pet_catalog
from brainbuddy.levels import LevelTracker
from brainbuddy.models import ActionResult, ProgressSnapshot, QuizItem, Rejection
from brainbuddy.pet import PetLifecycle, PetResult
from brainbuddy.quiz import AnswerResult, QuizEngine, QuizState
from brainbuddy.store import KeyValueStore
from brainbuddy.sync import ProgressSynchronizer
from brainbuddy.timers import Scheduler

logger = logging.getLogger(__name__)

XP_KEY = "xp"
STREAK_KEY = "streak_days"
LEVEL_KEY = "level"
LAST_ACTIVE_KEY = "last_active_date"


class EventType(str, Enum):
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    BADGE_EARNED = "badge_earned"
    PET_EVOLVED = "pet_evolved"
    QUIZ_COMPLETED = "quiz_completed"
    DAILY_RESET = "daily_reset"


@dataclass
class ProgressEvent:
    type: EventType
    value: object = None


def _non_negative(raw) -> int:
    value = int(raw)
    if value < 0:
        raise ValueError(f"negative value {value}")
    return value


class ProgressEngine:
    def __init__(
        self,
        store: KeyValueStore,
        user_id: str,
        quiz_items: Optional[list[QuizItem]] = None,
        catalog: Optional[dict[str, dict]] = None,
        client: Optional[ProgressServiceClient] = None,
        clock: Callable[[], datetime] = datetime.now,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.clock = clock
        self.settings = settings or Settings(user_id=user_id)
        self.client = client
        self.scheduler = scheduler or Scheduler()
        self.snapshot = ProgressSnapshot()
        self.levels = LevelTracker()
        self.last_active: Optional[date] = None
        self.quiz = QuizEngine(store, user_id, quiz_items if quiz_items is not None else load_daily_quiz())
        self.pet = PetLifecycle(store, user_id, catalog if catalog is not None else load_pet_catalog())
        self.achievements = AchievementEngine(store, user_id)
        self.sync = ProgressSynchronizer(client, lambda: self.snapshot, self._apply_merge)
        self.loaded = False
        self._listeners: list[Callable[[ProgressEvent], None]] = []

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], datetime] = datetime.now) -> "ProgressEngine":
        store = KeyValueStore(settings.db_path, ttl_days=settings.record_ttl_days, clock=clock)
        client = ProgressServiceClient(settings.api_base, lambda: settings.token, timeout=settings.http_timeout)
        return cls(store, settings.user_id, client=client, clock=clock, settings=settings)

    # --- lifecycle ---

    def load(self) -> "ProgressEngine":
        """Read every persisted field, then let remote merges through."""
        self.store.purge_expired()
        xp =self.store.read_as(self.user_id, XP_KEY, _non_negative, 0)
        streak = self.store.read_as(self.user_id, STREAK_KEY, _non_negative, 0)
        self.snapshot = ProgressSnapshot(xp=xp, streak_days=streak)
        self.levels = LevelTracker(xp)
        self.last_active = self.store.read_as(self.user_id, LAST_ACTIVE_KEY, date.fromisoformat, None)
        self.pet.load()
        self.achievements.load()
        if self.quiz.load(self.today()):
            self._emit(ProgressEvent(EventType.DAILY_RESET, self.today()))
        self._persist_progress()
        self.loaded = True
        self._evaluate()
        self.sync.mark_loaded()
        logger.info(f"Loaded progress for {self.user_id}: xp={xp} level={self.snapshot.level} streak={streak}")
        return self

    def start(self) -> None:
        """Register the sync and stats timers; both first run on the next tick."""
        self.sync.start(self.scheduler, self.settings.sync_interval, self.settings.stats_interval)

    def close(self) -> None:
        self.sync.stop()
        if self.client is not None:
            self.client.close()

    def tick(self, now: Optional[float] = None) -> list[str]:
        """Roll over the quiz day if needed, then run due timers."""
        self._roll_day()
        return self.scheduler.run_pending(now)

    def add_listener(self, callback: Callable[[ProgressEvent], None]) -> None:
        self._listeners.append(callback)

    def today(self) -> date:
        return self.clock().date()

    # --- read accessors ---

    @property
    def remote_stats(self) -> dict:
        return self.sync.remote_stats

    def quiz_view(self) -> dict:
        return {
            "index": self.quiz.session.current_index,
            "item": self.quiz.current_item,
            "last_result": self.quiz.last_result,
            "complete": self.quiz.state is QuizState.SESSION_COMPLETE,
            "completed_count": self.quiz.completed_count(),
            "total": len(self.quiz.items),
            "score": self.quiz.total_score(),
            "accuracy": self.quiz.accuracy(),
            "series": list(self.quiz.session.performance_series),
        }

    def pet_stage(self) -> Optional[str]:
        stage = self.pet.stage()
        return stage["stage"] if stage else None

    # --- actions ---

    def submit_answer(self, option: str, index: Optional[int] = None) -> AnswerResult:
        self._roll_day()
        result = self.quiz.submit_answer(option, index)
        if not result.ok:
            logger.debug(f"Answer rejected: {result.reason.value}")
            return result
        self._record_activity()
        if result.correct:
            self._credit_xp(result.xp_awarded)
            self._apply_pet_result(self.pet.reward_quiz_answer())
        if result.session_complete:
            self._emit(ProgressEvent(EventType.QUIZ_COMPLETED, self.quiz.completed_count()))
            self.sync.request_sync()
        self._after_mutation()
        return result

    def feed(self) -> PetResult:
        result = self.pet.feed(self.clock())
        return self._finish_pet_action(result)

    def play(self) -> PetResult:
        result = self.pet.play(self.clock())
        return self._finish_pet_action(result)

    def select_pet(self, species: str, name: str) -> PetResult:
        return self.pet.select(species, name, self.clock())

    def reset_pet(self) -> None:
        self.pet.reset()

    def reset_quizzes(self) -> None:
        """Manual reset of the quiz, achievements and badges; pet, xp and streak stay."""
        self.quiz.reset_all(self.today())
        self.achievements.reset()
        self._evaluate()

    def award_xp(self, amount: int, source: str = "tutor") -> ActionResult:
        """Credit XP earned elsewhere, e.g. a finished tutoring session."""
        if amount <= 0:
            logger.debug(f"Ignoring non-positive XP credit {amount} from {source}")
            return ActionResult.rejected(Rejection.INVALID_AMOUNT, "XP credit must be positive")
        logger.info(f"Crediting {amount} XP from {source}")
        self._credit_xp(amount)
        self._after_mutation()
        return ActionResult(ok=True, xp_awarded=amount)

    # --- internals ---

    def _finish_pet_action(self, result: PetResult) -> PetResult:
        if not result.ok:
            logger.debug(f"Pet action rejected: {result.reason.value}")
            return result
        self._apply_pet_result(result)
        self._after_mutation()
        return result

    def _apply_pet_result(self, result: PetResult) -> None:
        if not result.ok:
            return
        for level in result.evolved_to:
            self._emit(ProgressEvent(EventType.PET_EVOLVED, level))
        self._credit_xp(result.xp_awarded)

    def _credit_xp(self, amount: int) -> None:
        if amount <= 0:
            return
        self.snapshot.xp += amount
        self._recompute_level()

    def _recompute_level(self) -> None:
        new_level = self.levels.update(self.snapshot.xp)
        self.snapshot.level = self.levels.level
        if new_level is not None:
            logger.info(f"{self.user_id} reached level {new_level}")
            self._emit(ProgressEvent(EventType.LEVEL_UP, new_level))
            self.sync.request_sync()

    def _record_activity(self) -> None:
        """Extend the daily streak on the first answer of a calendar day."""
        today = self.today()
        if self.last_active == today:
            return
        if self.last_active == today - timedelta(days=1):
            self.snapshot.streak_days += 1
        else:
            self.snapshot.streak_days = 1
        self.last_active = today
        self.store.write(self.user_id, LAST_ACTIVE_KEY, today.isoformat())

    def _roll_day(self) -> None:
        today = self.today()
        if self.quiz.needs_daily_reset(today):
            self.quiz.reset_for_new_day(today)
            self._emit(ProgressEvent(EventType.DAILY_RESET, today))
            self._evaluate()

    def _apply_merge(self, merged: ProgressSnapshot) -> None:
        self.snapshot.xp = merged.xp
        self.snapshot.streak_days = merged.streak_days
        self._recompute_level()
        self._after_mutation()

    def _after_mutation(self) -> None:
        self._persist_progress()
        self._evaluate()

    def _persist_progress(self) -> None:
        self.store.write(self.user_id, XP_KEY, self.snapshot.xp)
        self.store.write(self.user_id, STREAK_KEY, self.snapshot.streak_days)
        self.store.write(self.user_id, LEVEL_KEY, self.snapshot.level)

    def _evaluate(self) -> list[Unlock]:
        if not self.loaded:
            return []
        signals = AchievementSignals(
            streak_days=self.snapshot.streak_days,
            quiz_complete=self.quiz.state is QuizState.SESSION_COMPLETE,
            accuracy=self.quiz.accuracy(),
            level=self.snapshot.level,
            xp=self.snapshot.xp,
        )
        unlocks = self.achievements.evaluate(signals, self.clock())
        for unlock in unlocks:
            kind = EventType.ACHIEVEMENT_UNLOCKED if unlock.kind == "achievement" else EventType.BADGE_EARNED
            self._emit(ProgressEvent(kind, unlock))
        return unlocks

    def _emit(self, event: ProgressEvent) -> None:
        for callback in self._listeners:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Listener failed on {event.type.value}")
