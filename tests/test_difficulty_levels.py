import pytest

from difficulty_levels import (
    DIFFICULTY_LADDER,
    DifficultyLadder,
    DifficultyLevel,
    DifficultyLevelConfigError,
)


def test_default_ladder_sequence():
    assert DIFFICULTY_LADDER.sequence() == ("beginner", "intermediate", "advanced", "expert")
    assert DIFFICULTY_LADDER.lowest_level() == "beginner"


def test_step_up_and_down_stop_at_the_ends():
    assert DIFFICULTY_LADDER.step_up("beginner") == "intermediate"
    assert DIFFICULTY_LADDER.step_up("expert") is None
    assert DIFFICULTY_LADDER.step_down("advanced") == "intermediate"
    assert DIFFICULTY_LADDER.step_down("beginner") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("advanced", "advanced"),
        ("Expert", "expert"),
        ("  intermediate ", "intermediate"),
        ("novice", "beginner"),
        (None, "beginner"),
    ],
)
def test_normalize_maps_unknown_values_to_lowest(raw, expected):
    assert DIFFICULTY_LADDER.normalize(raw) == expected


def test_unknown_level_index_raises():
    with pytest.raises(ValueError):
        DIFFICULTY_LADDER.index("legendary")


def test_label_lookup_falls_back_to_the_id():
    assert DIFFICULTY_LADDER.label("advanced") == "Advanced"
    assert DIFFICULTY_LADDER.label("legendary") == "legendary"


def test_custom_ladder_validates_ids():
    ladder = DifficultyLadder(
        [
            DifficultyLevel("easy", "Easy"),
            DifficultyLevel("hard", "Hard"),
        ]
    )
    assert ladder.sequence() == ("easy", "hard")
    assert ladder.step_up("easy") == "hard"
    assert ladder.label("hard") == "Hard"

    with pytest.raises(DifficultyLevelConfigError):
        DifficultyLadder([])

    with pytest.raises(DifficultyLevelConfigError):
        DifficultyLadder(
            [
                DifficultyLevel("easy", "Easy"),
                DifficultyLevel("easy", "Also easy"),
            ]
        )
