"""Threshold-driven difficulty adjustment along the difficulty ladder."""

from __future__ import annotations

import logging
from typing import List, Optional

from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import CurrentProgress, DifficultyAdjustment, LearningTrend, PerformanceAnalysis

logger = logging.getLogger(__name__)


class DifficultyManager:
    """Move a learner at most one rung per call based on recent scores.

    States are the ladder levels. With ``avg`` the mean of the recent
    assessment window: ``avg >= adaptation_threshold`` steps up,
    ``avg < struggle_threshold`` steps down, anything else holds. The ceiling
    and floor hold in place instead of stepping.
    """

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.ladder = self.settings.ladder

    def adjust_difficulty(
        self,
        analysis: PerformanceAnalysis,
        progress: Optional[CurrentProgress],
    ) -> DifficultyAdjustment:
        current = self._current_level(progress)
        try:
            return self._transition(current, self._recent_scores(analysis.learning_trends))
        except Exception:
            logger.exception("Difficulty adjustment failed; keeping level %s", current)
            return DifficultyAdjustment(
                level=current,
                change="maintain",
                reason="Unable to compute an optimal difficulty adjustment",
            )

    # ------------------------------------------------------------------
    def _current_level(self, progress: Optional[CurrentProgress]) -> str:
        if progress is None:
            return self.ladder.lowest_level()
        return self.ladder.normalize(progress.current_difficulty)

    def _recent_scores(self, trends: List[LearningTrend]) -> List[float]:
        window = trends[-self.settings.trend_window :]
        return [
            float(trend.score)
            for trend in window
            if trend.type == "assessment" and trend.score is not None
        ]

    def _transition(self, current: str, recent_scores: List[float]) -> DifficultyAdjustment:
        if not recent_scores:
            return DifficultyAdjustment(
                level=current,
                change="maintain",
                reason="Insufficient data: no recent assessments to evaluate",
            )

        avg_score = sum(recent_scores) / len(recent_scores)

        if avg_score >= self.settings.advance_score:
            next_level = self.ladder.step_up(current)
            if next_level is None:
                return DifficultyAdjustment(
                    level=current,
                    change="maintain",
                    reason=(
                        f"Already at the ceiling difficulty level ({self.ladder.label(current)}) "
                        "with strong performance"
                    ),
                )
            return DifficultyAdjustment(
                level=next_level,
                change="increase",
                reason=self._generate_adjustment_reason("increase", avg_score),
            )

        if avg_score < self.settings.gap_score:
            previous_level = self.ladder.step_down(current)
            if previous_level is None:
                return DifficultyAdjustment(
                    level=current,
                    change="maintain",
                    reason=(
                        f"Already at the floor difficulty level ({self.ladder.label(current)}), "
                        "providing additional support"
                    ),
                )
            return DifficultyAdjustment(
                level=previous_level,
                change="decrease",
                reason=self._generate_adjustment_reason("decrease", avg_score),
            )

        return DifficultyAdjustment(
            level=current,
            change="maintain",
            reason=self._generate_adjustment_reason("maintain", avg_score),
        )

    @staticmethod
    def _generate_adjustment_reason(change: str, avg_score: float) -> str:
        """Generate explanation for a difficulty change."""
        percent = round(avg_score)
        if change == "increase":
            return (
                f"Consistent strong performance ({percent}% average) "
                "indicates readiness for more challenge"
            )
        if change == "decrease":
            return (
                f"Recent performance ({percent}% average) suggests "
                "the current level may be too challenging"
            )
        return f"Current performance ({percent}% average) is appropriate for this level"


__all__ = ["DifficultyManager"]
