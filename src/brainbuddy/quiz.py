"""Daily quiz session: answer evaluation, scoring and the day-boundary reset."""
import copy
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from brainbuddy.models import (
    ActionResult, Outcome, PerformancePoint, QuizItem, QuizSession, Rejection,
)
from brainbuddy.store import KeyValueStore

logger = logging.getLogger(__name__)

SEED_SCORE = 50.0
CORRECT_BUMP = 10.0
PENALTY_STEP = 5.0

ITEMS_KEY = "quiz_items"
SESSION_KEY = "quiz_session"
DATE_KEY = "quiz_date"
TOTALS_KEY = "quiz_totals"


class QuizState(str, Enum):
    PRESENTING = "presenting"
    SESSION_COMPLETE = "session_complete"


@dataclass
class AnswerResult(ActionResult):
    index: Optional[int] = None
    correct: bool = False
    correct_option: Optional[str] = None
    point: Optional[PerformancePoint] = None
    session_complete: bool = False


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def next_point(series: list[PerformancePoint], correct: bool) -> PerformancePoint:
    """Performance point following series for one more answer.

    Starts from 50; a correct answer adds 10, the n-th wrong answer of the
    session subtracts 5 * n. Scores stay within [0, 100].
    """
    previous = series[-1].score if series else SEED_SCORE
    if correct:
        return PerformancePoint(Outcome.CORRECT, _clamp(previous + CORRECT_BUMP), 0.0)
    wrong_so_far = sum(1 for p in series if p.outcome is Outcome.WRONG) + 1
    penalty = PENALTY_STEP * wrong_so_far
    return PerformancePoint(Outcome.WRONG, _clamp(previous - penalty), penalty)


class QuizEngine:
    def __init__(self, store: KeyValueStore, user_id: str, items: list[QuizItem]):
        self.store = store
        self.user_id = user_id
        self.items = [copy.deepcopy(item) for item in items]
        self.session = QuizSession()
        self.quiz_date: Optional[date] = None
        self.correct_total = 0
        self.wrong_total = 0
        self.last_result: Optional[AnswerResult] = None

    # --- persistence ---

    def load(self, today: date) -> bool:
        """Read persisted quiz fields. Returns True if a daily reset was applied."""
        flags = self.store.read_as(self.user_id, ITEMS_KEY, self._parse_flags, None)
        if flags is not None:
            for item, done in zip(self.items, flags):
                item.completed = done
        self.session = self.store.read_as(
            self.user_id, SESSION_KEY, self._parse_session, QuizSession(),
        )
        totals = self.store.read_as(
            self.user_id, TOTALS_KEY,
            lambda raw: (int(raw["correct"]), int(raw["wrong"])), (0, 0),
        )
        self.correct_total, self.wrong_total = totals
        self.quiz_date = self.store.read_as(self.user_id, DATE_KEY, date.fromisoformat, None)

        if self.items and all(item.completed for item in self.items):
            self.session.completed = True

        if self.quiz_date is None:
            self.quiz_date = today
            self.store.write(self.user_id, DATE_KEY, today.isoformat())
            return False
        if self.needs_daily_reset(today):
            self.reset_for_new_day(today)
            return True
        return False

    def _parse_flags(self, raw) -> list[bool]:
        if not isinstance(raw, list) or len(raw) != len(self.items):
            raise ValueError(f"expected {len(self.items)} flags")
        return [bool(v) for v in raw]

    def _parse_session(self, raw) -> QuizSession:
        session = QuizSession.from_dict(raw)
        if not 0 <= session.current_index <= len(self.items):
            raise ValueError(f"index {session.current_index} out of range")
        if session.current_index == len(self.items):
            session.completed = True
        return session

    def save(self) -> None:
        self.store.write(self.user_id, ITEMS_KEY, [item.completed for item in self.items])
        self.store.write(self.user_id, SESSION_KEY, self.session.to_dict())
        self.store.write(self.user_id, TOTALS_KEY, {"correct": self.correct_total, "wrong": self.wrong_total})
        if self.quiz_date is not None:
            self.store.write(self.user_id, DATE_KEY, self.quiz_date.isoformat())

    # --- state ---

    @property
    def state(self) -> QuizState:
        if self.session.completed:
            return QuizState.SESSION_COMPLETE
        return QuizState.PRESENTING

    @property
    def current_item(self) -> Optional[QuizItem]:
        if self.session.completed:
            return None
        return self.items[self.session.current_index]

    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.completed)

    def accuracy(self) -> Optional[float]:
        """Running share of correct answers, None before the first answer."""
        answered = self.correct_total + self.wrong_total
        if answered == 0:
            return None
        return self.correct_total / answered

    def total_score(self) -> float:
        """Credited XP minus recorded penalties; may go negative."""
        earned = sum(
            self.items[idx].xp_reward
            for idx, option in self.session.answers.items()
            if idx < len(self.items) and option == self.items[idx].correct_option
        )
        penalties = sum(p.penalty for p in self.session.performance_series)
        return earned - penalties

    # --- transitions ---

    def submit_answer(self, option: str, index: Optional[int] = None) -> AnswerResult:
        """Evaluate option against the current item and advance.

        index, when given, is the item the caller rendered; answering an item
        the session has already moved past is ignored.
        """
        if self.session.completed:
            return AnswerResult(ok=False, reason=Rejection.QUIZ_COMPLETE, message="Today's quiz is complete")
        current = self.session.current_index
        if index is not None and index != current:
            logger.debug(f"Ignoring answer for item {index}, session is at {current}")
            return AnswerResult(ok=False, reason=Rejection.STALE_INDEX, index=index)
        item = self.items[current]
        if option not in item.options:
            return AnswerResult(ok=False, reason=Rejection.INVALID_OPTION, index=current,
                                message=f"{option!r} is not one of the choices")

        correct = option == item.correct_option
        point = next_point(self.session.performance_series, correct)
        self.session.answers[current] = option
        self.session.performance_series.append(point)
        if correct:
            item.completed = True
            self.correct_total += 1
        else:
            self.wrong_total += 1

        self.session.current_index = current + 1
        if self.session.current_index >= len(self.items):
            self.session.completed = True

        self.last_result = AnswerResult(
            ok=True,
            xp_awarded=item.xp_reward if correct else 0,
            index=current,
            correct=correct,
            correct_option=item.correct_option,
            point=point,
            session_complete=self.session.completed,
        )
        self.save()
        return self.last_result

    def needs_daily_reset(self, today: date) -> bool:
        return self.quiz_date is not None and self.quiz_date != today

    def reset_for_new_day(self, today: date) -> None:
        """Start a fresh daily set. In-progress answers for the old day are dropped."""
        logger.info(f"New quiz day {today.isoformat()} (previous {self.quiz_date})")
        for item in self.items:
            item.completed = False
        self.session = QuizSession()
        self.last_result = None
        self.quiz_date = today
        self.save()

    def reset_all(self, today: date) -> None:
        """Manual full reset, including the running accuracy counters."""
        self.correct_total = 0
        self.wrong_total = 0
        self.reset_for_new_day(today)
