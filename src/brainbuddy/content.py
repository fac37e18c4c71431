"""Load the packaged daily quiz set and pet species catalog."""
import json
from pathlib import Path

from brainbuddy.exceptions import ContentError
from brainbuddy.models import QuizItem

CONTENT_DIR = Path(__file__).parent / "content"

DAILY_SET_SIZE = 10
STAGE_BANDS = ("0", "1-3", "4-6", "7-9", "10+")


def _read_json(name: str) -> dict:
    path = CONTENT_DIR / name
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ContentError(f"Cannot load {name}: {e}") from e


def load_daily_quiz() -> list[QuizItem]:
    """The fixed ordered set of ten items answered each day."""
    data = _read_json("daily_quiz.json")
    items = []
    for raw in data["items"]:
        if len(raw["options"]) != 4 or raw["answer"] not in raw["options"]:
            raise ContentError(f"Malformed quiz item: {raw['question']!r}")
        if raw["xp_reward"] <= 0:
            raise ContentError(f"Quiz item must reward XP: {raw['question']!r}")
        items.append(QuizItem(
            question=raw["question"],
            options=list(raw["options"]),
            correct_option=raw["answer"],
            xp_reward=int(raw["xp_reward"]),
        ))
    if len(items) != DAILY_SET_SIZE:
        raise ContentError(f"Daily set needs {DAILY_SET_SIZE} items, found {len(items)}")
    return items


def load_pet_catalog() -> dict[str, dict]:
    """Species keyed by id, each with a stage table per level band."""
    data = _read_json("pets.json")
    catalog = {}
    for species in data["species"]:
        missing = [band for band in STAGE_BANDS if band not in species["levels"]]
        if missing:
            raise ContentError(f"Species {species['id']!r} lacks stages for {missing}")
        catalog[species["id"]] = species
    return catalog
