"""Practice activity suggestions for weak and strong topics."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from curriculum import CurriculumCatalog
from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import Course, PerformanceAnalysis, PracticeActivity, PracticeSuggestion

logger = logging.getLogger(__name__)


def _first_activity_id(activities: Iterable[PracticeActivity]) -> Optional[str]:
    """Id of the first activity that has one; id-less entries cannot be launched."""

    return next((activity.id for activity in activities if activity.id), None)


class PracticeRecommender:
    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.caps = self.settings.caps

    def suggest_practice_activities(
        self,
        analysis: PerformanceAnalysis,
        courses: Sequence[Course],
    ) -> List[PracticeSuggestion]:
        """Quizzes and exercises for gaps first, advanced exercises for strengths after."""

        try:
            catalog = CurriculumCatalog(courses)
            suggestions = self._gap_practice(analysis, catalog)
            suggestions.extend(self._strength_practice(analysis, catalog))
            return suggestions[: self.caps.practice]
        except Exception:
            logger.exception("Practice suggestion failed")
            return []

    # ------------------------------------------------------------------
    def _gap_practice(
        self,
        analysis: PerformanceAnalysis,
        catalog: CurriculumCatalog,
    ) -> List[PracticeSuggestion]:
        suggestions: List[PracticeSuggestion] = []
        for gap in analysis.knowledge_gaps[: self.caps.practice_gaps]:
            topic = catalog.find_topic(gap.topic)
            if topic is None:
                continue
            quiz_id = _first_activity_id(topic.quizzes)
            if quiz_id:
                suggestions.append(
                    PracticeSuggestion(
                        type="quiz",
                        activity_id=quiz_id,
                        topic=gap.topic,
                        title=f"Practice Quiz: {topic.title}",
                        reason=(
                            "This will help strengthen your understanding in an area "
                            f"where you scored {round(gap.score)}%"
                        ),
                        priority="high",
                    )
                )
            exercise_id = _first_activity_id(topic.exercises)
            if exercise_id:
                suggestions.append(
                    PracticeSuggestion(
                        type="exercise",
                        activity_id=exercise_id,
                        topic=gap.topic,
                        title=f"Practice Exercise: {topic.title}",
                        reason=f"Hands-on practice will reinforce concepts in {topic.title}",
                        priority="high",
                    )
                )
        return suggestions

    def _strength_practice(
        self,
        analysis: PerformanceAnalysis,
        catalog: CurriculumCatalog,
    ) -> List[PracticeSuggestion]:
        suggestions: List[PracticeSuggestion] = []
        for strength in analysis.strengths[: self.caps.practice_strengths]:
            topic = catalog.find_topic(strength)
            if topic is None:
                continue
            advanced_id = _first_activity_id(topic.advanced_exercises)
            if not advanced_id:
                continue
            suggestions.append(
                PracticeSuggestion(
                    type="advanced_exercise",
                    activity_id=advanced_id,
                    topic=strength,
                    title=f"Advanced Exercise: {topic.title}",
                    reason="This will push your skills in an area where you show strength",
                    priority="medium",
                )
            )
        return suggestions


__all__ = ["PracticeRecommender"]
