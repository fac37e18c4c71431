# tests/test_pet.py
from datetime import timedelta

import pytest

from brainbuddy.models import Rejection
from brainbuddy.pet import (
    EVOLUTION_XP, FEED_XP, PLAY_XP, PET_KEY, PetLifecycle, level_band, stage_for_level,
)


@pytest.fixture
def pet(store, catalog):
    lifecycle = PetLifecycle(store, "alice", catalog)
    lifecycle.load()
    return lifecycle


@pytest.fixture
def dragon(pet, clock):
    pet.select("dragon", "Ember", clock())
    return pet


@pytest.mark.parametrize("level,band", [
    (0, "0"), (1, "1-3"), (3, "1-3"), (4, "4-6"), (6, "4-6"), (7, "7-9"), (9, "7-9"), (10, "10+"), (42, "10+"),
])
def test_level_band(level, band):
    assert level_band(level) == band


def test_stage_for_level(catalog):
    assert stage_for_level(catalog["dragon"], 0)["stage"] == "egg"
    assert stage_for_level(catalog["dragon"], 5)["stage"] == "juvenile"
    assert stage_for_level(catalog["cat"], 12)["emoji"] == "🦁"


def test_no_pet_initially(pet):
    assert pet.active is False
    assert pet.stage() is None


def test_select_initializes_pet(dragon, clock):
    state = dragon.state
    assert (state.species, state.name) == ("dragon", "Ember")
    assert (state.level, state.experience) == (0, 0)
    assert (state.happiness, state.energy) == (100, 100)
    assert state.last_fed_at == clock()
    assert state.last_played_at == clock()
    assert dragon.stage()["stage"] == "egg"


def test_select_twice_is_rejected(dragon, clock):
    result = dragon.select("cat", "Tom", clock())
    assert result.ok is False
    assert result.reason is Rejection.PET_ALREADY_SELECTED
    assert dragon.state.species == "dragon"


def test_select_unknown_species(pet, clock):
    result = pet.select("unicorn", "Sparkle", clock())
    assert result.reason is Rejection.UNKNOWN_SPECIES
    assert pet.active is False


@pytest.mark.parametrize("name", ["", "   ", "x" * 21])
def test_select_invalid_name(pet, clock, name):
    result = pet.select("owl", name, clock())
    assert result.reason is Rejection.INVALID_NAME
    assert pet.active is False


def test_select_strips_name(pet, clock):
    pet.select("owl", "  Hoot  ", clock())
    assert pet.state.name == "Hoot"


def test_feed_and_play_without_pet(pet, clock):
    assert pet.feed(clock()).reason is Rejection.PET_NOT_SELECTED
    assert pet.play(clock()).reason is Rejection.PET_NOT_SELECTED
    assert pet.reward_quiz_answer().ok is False


def test_feed_right_after_selection_is_on_cooldown(dragon, clock):
    result = dragon.feed(clock())
    assert result.ok is False
    assert result.reason is Rejection.FEED_COOLDOWN
    assert result.wait == timedelta(minutes=5)


def test_feed_after_cooldown(dragon, clock):
    dragon.state.happiness = 50
    dragon.state.energy = 40
    clock.advance(minutes=5)
    result = dragon.feed(clock())
    assert result.ok is True
    assert result.xp_awarded == FEED_XP
    assert dragon.state.happiness == 60
    assert dragon.state.energy == 55
    assert dragon.state.last_fed_at == clock()


def test_feed_twice_within_cooldown_changes_nothing(dragon, clock):
    clock.advance(minutes=5)
    dragon.feed(clock())
    before = dragon.state.to_dict()
    clock.advance(minutes=4, seconds=59)
    result = dragon.feed(clock())
    assert result.reason is Rejection.FEED_COOLDOWN
    assert result.wait == timedelta(seconds=1)
    assert dragon.state.to_dict() == before


def test_feed_clamps_at_hundred(dragon, clock):
    clock.advance(minutes=5)
    dragon.feed(clock())
    assert dragon.state.happiness == 100
    assert dragon.state.energy == 100


def test_play_cooldown(dragon, clock):
    clock.advance(minutes=9)
    assert dragon.play(clock()).reason is Rejection.PLAY_COOLDOWN
    clock.advance(minutes=1)
    result = dragon.play(clock())
    assert result.ok is True
    assert result.xp_awarded == PLAY_XP
    assert dragon.state.experience == 8
    assert dragon.state.energy == 90
    assert dragon.state.happiness == 100


def test_play_energy_never_negative(dragon, clock):
    dragon.state.energy = 5
    clock.advance(minutes=10)
    dragon.play(clock())
    assert dragon.state.energy == 0


def test_play_evolves_and_carries_overflow(dragon, clock):
    dragon.state.experience = 95
    clock.advance(minutes=10)
    result = dragon.play(clock())
    assert dragon.state.experience == 3
    assert dragon.state.level == 1
    assert result.evolved_to == [1]
    assert result.xp_awarded == PLAY_XP + EVOLUTION_XP
    assert dragon.stage()["stage"] == "hatchling"


def test_gain_experience_multiple_evolutions(dragon):
    evolved, bonus = dragon.gain_experience(250)
    assert evolved == [1, 2]
    assert bonus == 2 * EVOLUTION_XP
    assert dragon.state.experience == 50


def test_quiz_reward_trains_pet(dragon):
    result = dragon.reward_quiz_answer()
    assert result.ok is True
    assert result.xp_awarded == 0
    assert dragon.state.experience == 5


def test_state_persists(store, catalog, dragon, clock):
    clock.advance(minutes=10)
    dragon.play(clock())
    reloaded = PetLifecycle(store, "alice", catalog)
    reloaded.load()
    assert reloaded.state == dragon.state


def test_corrupt_record_loads_default(store, catalog):
    store.write("alice", PET_KEY, {"species": "cat", "name": "Tom", "experience": 250})
    pet = PetLifecycle(store, "alice", catalog)
    pet.load()
    assert pet.active is False


def test_unknown_stored_species_resets(store, catalog):
    store.write("alice", PET_KEY, {"species": "griffin", "name": "Gus"})
    pet = PetLifecycle(store, "alice", catalog)
    pet.load()
    assert pet.active is False


def test_out_of_range_stats_are_clamped_on_load(store, catalog):
    store.write("alice", PET_KEY, {"species": "cat", "name": "Tom", "happiness": 140, "energy": -3})
    pet = PetLifecycle(store, "alice", catalog)
    pet.load()
    assert (pet.state.happiness, pet.state.energy) == (100, 0)


def test_reset_allows_new_selection(dragon, clock):
    dragon.reset()
    assert dragon.active is False
    assert dragon.select("cat", "Tom", clock()).ok is True


def test_cooldown_remaining_unknown_action(dragon, clock):
    with pytest.raises(ValueError):
        dragon.cooldown_remaining("nap", clock())
