"""Tests for the difficulty state machine."""

from __future__ import annotations

import pytest

from difficulty_levels import DIFFICULTY_LADDER
from engines.difficulty_manager import DifficultyManager
from engines.performance_analyzer import PerformanceAnalyzer
from schemas import CurrentProgress


def _adjust(make_history, level, *scores):
    history = make_history(*[("loops", score) for score in scores])
    analysis = PerformanceAnalyzer().analyze(history)
    progress = CurrentProgress(current_difficulty=level)
    return DifficultyManager().adjust_difficulty(analysis, progress)


@pytest.mark.parametrize("level", DIFFICULTY_LADDER.sequence())
@pytest.mark.parametrize(
    "scores",
    [(100, 100), (70,), (69.9,), (50,), (49.9,), (0, 0, 0), (10, 90, 100, 40, 60)],
)
def test_moves_at_most_one_level(make_history, level, scores):
    adjustment = _adjust(make_history, level, *scores)

    assert adjustment.level in DIFFICULTY_LADDER.sequence()
    assert abs(DIFFICULTY_LADDER.index(level) - DIFFICULTY_LADDER.index(adjustment.level)) <= 1
    if adjustment.change == "maintain":
        assert adjustment.level == level


def test_strong_performance_steps_up(make_history):
    adjustment = _adjust(make_history, "intermediate", 75, 80, 70)

    assert adjustment.level == "advanced"
    assert adjustment.change == "increase"
    assert "75% average" in adjustment.reason


def test_exact_adaptation_threshold_steps_up(make_history):
    assert _adjust(make_history, "beginner", 70).change == "increase"


def test_weak_performance_steps_down(make_history):
    adjustment = _adjust(make_history, "intermediate", 40)

    assert adjustment.level == "beginner"
    assert adjustment.change == "decrease"
    assert "too challenging" in adjustment.reason


def test_exact_struggle_threshold_maintains(make_history):
    adjustment = _adjust(make_history, "advanced", 50)

    assert adjustment.level == "advanced"
    assert adjustment.change == "maintain"
    assert adjustment.reason == "Current performance (50% average) is appropriate for this level"


def test_middle_band_maintains(make_history):
    adjustment = _adjust(make_history, "intermediate", 60)

    assert adjustment.level == "intermediate"
    assert adjustment.change == "maintain"


def test_ceiling_and_floor_hold(make_history):
    ceiling = _adjust(make_history, "expert", 95)
    floor = _adjust(make_history, "beginner", 10)

    assert (ceiling.level, ceiling.change) == ("expert", "maintain")
    assert "ceiling" in ceiling.reason
    assert "(Expert)" in ceiling.reason
    assert (floor.level, floor.change) == ("beginner", "maintain")
    assert "floor" in floor.reason
    assert "(Beginner)" in floor.reason


def test_no_assessments_maintains_with_insufficient_data():
    adjustment = DifficultyManager().adjust_difficulty(
        PerformanceAnalyzer().analyze([]),
        CurrentProgress(current_difficulty="advanced"),
    )

    assert adjustment.level == "advanced"
    assert adjustment.change == "maintain"
    assert adjustment.reason.startswith("Insufficient data")


def test_only_the_last_five_trends_count(make_history):
    adjustment = _adjust(make_history, "beginner", 0, 0, 0, 100, 100, 100, 100, 100)

    assert adjustment.change == "increase"


def test_missing_or_unknown_difficulty_is_treated_as_lowest(make_history):
    analysis = PerformanceAnalyzer().analyze(make_history(("loops", 95)))
    manager = DifficultyManager()

    assert manager.adjust_difficulty(analysis, None).level == "intermediate"
    unknown = CurrentProgress.model_validate({"currentDifficulty": "wizard"})
    assert manager.adjust_difficulty(analysis, unknown).level == "intermediate"
    mixed_case = CurrentProgress.model_validate({"currentDifficulty": "Advanced"})
    assert manager.adjust_difficulty(analysis, mixed_case).level == "expert"


def test_internal_failure_maintains_current_level(monkeypatch, make_history):
    def boom(self, current, scores):
        raise RuntimeError("broken transition")

    monkeypatch.setattr(DifficultyManager, "_transition", boom)

    adjustment = _adjust(make_history, "advanced", 95)

    assert adjustment.level == "advanced"
    assert adjustment.change == "maintain"
    assert adjustment.reason.startswith("Unable")
