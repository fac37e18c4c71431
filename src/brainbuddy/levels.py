"""Experience to level mapping."""

XP_PER_LEVEL = 100


def level_for_xp(xp: int) -> int:
    """Level reached with xp total experience; every level costs 100 XP."""
    return max(0, xp) // XP_PER_LEVEL + 1


def xp_for_level(level: int) -> int:
    """Total experience required to reach level."""
    return (max(1, level) - 1) * XP_PER_LEVEL


def level_progress(xp: int) -> dict:
    """Progress inside the current level, for the dashboard bar."""
    xp = max(0, xp)
    into = xp - xp_for_level(level_for_xp(xp))
    return {
        "level": level_for_xp(xp),
        "xp_into_level": into,
        "xp_needed": XP_PER_LEVEL,
        "percent": round(into / XP_PER_LEVEL * 100, 1),
    }


class LevelTracker:
    """Caches the last known level and reports when a recompute raises it."""

    def __init__(self, xp: int = 0):
        self.level = level_for_xp(xp)

    def update(self, xp: int) -> int | None:
        """Recompute from xp. Returns the new level on a level-up, else None."""
        new_level = level_for_xp(xp)
        previous, self.level = self.level, new_level
        return new_level if new_level > previous else None
