"""Virtual companion: one-time selection, feed/play cooldowns and evolution."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from brainbuddy.models import ActionResult, PetState, Rejection
from brainbuddy.store import KeyValueStore

logger = logging.getLogger(__name__)

PET_KEY = "pet"

FEED_COOLDOWN = timedelta(minutes=5)
PLAY_COOLDOWN = timedelta(minutes=10)
FEED_HAPPINESS = 10
FEED_ENERGY = 15
FEED_XP = 5
PLAY_HAPPINESS = 20
PLAY_ENERGY_COST = 10
PLAY_EXPERIENCE = 8
PLAY_XP = 8
QUIZ_EXPERIENCE = 5
EVOLUTION_THRESHOLD = 100
EVOLUTION_XP = 20
MAX_NAME_LENGTH = 20


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def level_band(level: int) -> str:
    if level <= 0:
        return "0"
    if level <= 3:
        return "1-3"
    if level <= 6:
        return "4-6"
    if level <= 9:
        return "7-9"
    return "10+"


def stage_for_level(species: dict, level: int) -> dict:
    """Catalog entry ({"stage", "emoji"}) for a species at a pet level."""
    return species["levels"][level_band(level)]


@dataclass
class PetResult(ActionResult):
    evolved_to: list[int] = field(default_factory=list)
    wait: Optional[timedelta] = None


class PetLifecycle:
    def __init__(self, store: KeyValueStore, user_id: str, catalog: dict[str, dict]):
        self.store = store
        self.user_id = user_id
        self.catalog = catalog
        self.state = PetState()

    @staticmethod
    def _parse(raw: dict) -> PetState:
        state = PetState.from_dict(raw)
        if state.level < 0 or not 0 <= state.experience < EVOLUTION_THRESHOLD:
            raise ValueError(f"level={state.level} experience={state.experience}")
        state.happiness = _clamp(state.happiness)
        state.energy = _clamp(state.energy)
        return state

    def load(self) -> None:
        state = self.store.read_as(self.user_id, PET_KEY, self._parse, PetState())
        if state.selected and state.species not in self.catalog:
            logger.warning(f"Stored pet species {state.species!r} is not in the catalog, resetting")
            state = PetState()
        self.state = state

    def save(self) -> None:
        self.store.write(self.user_id, PET_KEY, self.state.to_dict())

    @property
    def active(self) -> bool:
        return self.state.selected

    def stage(self) -> Optional[dict]:
        if not self.active:
            return None
        return stage_for_level(self.catalog[self.state.species], self.state.level)

    def cooldown_remaining(self, action: str, now: datetime) -> timedelta:
        if action == "feed":
            last, cooldown = self.state.last_fed_at, FEED_COOLDOWN
        elif action == "play":
            last, cooldown = self.state.last_played_at, PLAY_COOLDOWN
        else:
            raise ValueError(f"Unknown pet action: {action}")
        if last is None:
            return timedelta(0)
        return max(timedelta(0), cooldown - (now - last))

    def select(self, species: str, name: str, now: datetime) -> PetResult:
        if self.active:
            return PetResult(ok=False, reason=Rejection.PET_ALREADY_SELECTED,
                             message=f"{self.state.name} is already your companion")
        if species not in self.catalog:
            return PetResult(ok=False, reason=Rejection.UNKNOWN_SPECIES, message=f"No species {species!r}")
        name = (name or "").strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            return PetResult(ok=False, reason=Rejection.INVALID_NAME,
                             message=f"Name must be 1-{MAX_NAME_LENGTH} characters")
        self.state = PetState(species=species, name=name, last_fed_at=now, last_played_at=now)
        self.save()
        logger.info(f"Selected pet {name} ({species})")
        return PetResult(ok=True, message=f"Say hello to {name}!")

    def reset(self) -> None:
        """Forget the companion so a new one can be selected."""
        self.state = PetState()
        self.save()

    def gain_experience(self, amount: int) -> tuple[list[int], int]:
        """Add experience, evolving once per full 100 points.

        Returns the levels reached and the XP bonus owed to the learner.
        """
        self.state.experience += amount
        evolved = []
        while self.state.experience >= EVOLUTION_THRESHOLD:
            self.state.experience -= EVOLUTION_THRESHOLD
            self.state.level += 1
            evolved.append(self.state.level)
            logger.info(f"{self.state.name} evolved to level {self.state.level}")
        return evolved, EVOLUTION_XP * len(evolved)

    def feed(self, now: datetime) -> PetResult:
        if not self.active:
            return PetResult(ok=False, reason=Rejection.PET_NOT_SELECTED, message="Choose a pet first")
        wait = self.cooldown_remaining("feed", now)
        if wait > timedelta(0):
            return PetResult(ok=False, reason=Rejection.FEED_COOLDOWN, wait=wait,
                             message=f"{self.state.name} is still full!")
        self.state.happiness = _clamp(self.state.happiness + FEED_HAPPINESS)
        self.state.energy = _clamp(self.state.energy + FEED_ENERGY)
        self.state.last_fed_at = now
        self.save()
        return PetResult(ok=True, xp_awarded=FEED_XP, message=f"{self.state.name} loved the food!")

    def play(self, now: datetime) -> PetResult:
        if not self.active:
            return PetResult(ok=False, reason=Rejection.PET_NOT_SELECTED, message="Choose a pet first")
        wait = self.cooldown_remaining("play", now)
        if wait > timedelta(0):
            return PetResult(ok=False, reason=Rejection.PLAY_COOLDOWN, wait=wait,
                             message=f"{self.state.name} is tired!")
        self.state.happiness = _clamp(self.state.happiness + PLAY_HAPPINESS)
        self.state.energy = _clamp(self.state.energy - PLAY_ENERGY_COST)
        self.state.last_played_at = now
        evolved, bonus = self.gain_experience(PLAY_EXPERIENCE)
        self.save()
        return PetResult(ok=True, xp_awarded=PLAY_XP + bonus, evolved_to=evolved,
                         message=f"{self.state.name} had fun playing!")

    def reward_quiz_answer(self) -> PetResult:
        """Correct quiz answers also train an active pet."""
        if not self.active:
            return PetResult(ok=False, reason=Rejection.PET_NOT_SELECTED)
        evolved, bonus = self.gain_experience(QUIZ_EXPERIENCE)
        self.save()
        return PetResult(ok=True, xp_awarded=bonus, evolved_to=evolved)
