"""Progress dashboard figures and labels."""
from brainbuddy.engine import ProgressEngine
from brainbuddy.levels import level_progress


def get_performance_label(score: float) -> str:
    if score >= 80:
        return "ON FIRE"
    elif score >= 60:
        return "STEADY"
    elif score >= 40:
        return "WARMING UP"
    return "KEEP GOING"


def get_performance_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    elif score >= 40:
        return "dark_orange"
    return "red"


def get_level_bar(percent: float, width: int = 20) -> str:
    filled = int(round(percent / 100 * width))
    filled = max(0, min(width, filled))
    return "█" * filled + "░" * (width - filled)


def get_progress_summary(engine: ProgressEngine) -> dict:
    snapshot = engine.snapshot
    progress = level_progress(snapshot.xp)
    quiz = engine.quiz_view()
    series = quiz["series"]
    accuracy = quiz["accuracy"]
    return {
        "xp": snapshot.xp,
        "level": snapshot.level,
        "streak_days": snapshot.streak_days,
        "xp_into_level": progress["xp_into_level"],
        "xp_needed": progress["xp_needed"],
        "level_percent": progress["percent"],
        "quizzes_completed": quiz["completed_count"],
        "quiz_total": quiz["total"],
        "quiz_score": quiz["score"],
        "performance": series[-1].score if series else None,
        "accuracy_pct": round(accuracy * 100, 1) if accuracy is not None else None,
    }


def get_badge_rows(engine: ProgressEngine) -> list[dict]:
    return [
        {
            "name": badge.name,
            "icon": badge.icon,
            "earned": badge.earned,
            "requirement": badge.requirement_description,
        }
        for badge in engine.achievements.badges.values()
    ]


def get_pet_summary(engine: ProgressEngine) -> dict | None:
    pet = engine.pet
    if not pet.active:
        return None
    now = engine.clock()
    stage = pet.stage()
    return {
        "name": pet.state.name,
        "species": pet.catalog[pet.state.species]["name"],
        "stage": stage["stage"],
        "emoji": stage["emoji"],
        "level": pet.state.level,
        "experience": pet.state.experience,
        "happiness": pet.state.happiness,
        "energy": pet.state.energy,
        "feed_wait": int(pet.cooldown_remaining("feed", now).total_seconds()),
        "play_wait": int(pet.cooldown_remaining("play", now).total_seconds()),
    }
