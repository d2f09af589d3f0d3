"""Forecast upcoming topics a student is likely to struggle with."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from curriculum import CurriculumCatalog
from engines.text_generation import StrugglePredictionClient, StrugglePredictionServiceError
from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import (
    AssessmentRecord,
    Course,
    CurrentProgress,
    Student,
    StrugglePrediction,
    Topic,
)

logger = logging.getLogger(__name__)


class StrugglePredictor:
    """Prerequisite analysis first, the text-generation service as a fallback."""

    def __init__(
        self,
        client: Optional[StrugglePredictionClient] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.caps = self.settings.caps
        self.client = client

    async def predict_struggle_areas(
        self,
        student: Student,
        progress: Optional[CurrentProgress],
        courses: Sequence[Course],
    ) -> List[StrugglePrediction]:
        try:
            return await self._predict(student, progress, CurriculumCatalog(courses))
        except Exception:
            logger.exception("Struggle prediction failed")
            return []

    # ------------------------------------------------------------------
    async def _predict(
        self,
        student: Student,
        progress: Optional[CurrentProgress],
        catalog: CurriculumCatalog,
    ) -> List[StrugglePrediction]:
        upcoming = self._upcoming_topics(progress, catalog)
        if not upcoming:
            return []

        history = student.assessment_history
        predictions = self._prerequisite_predictions(upcoming, history, catalog)

        if len(predictions) < self.caps.min_prerequisite_predictions and history:
            known = {prediction.topic_id for prediction in predictions}
            for prediction in await self._service_predictions(history, upcoming):
                if prediction.topic_id in known:
                    continue
                known.add(prediction.topic_id)
                predictions.append(prediction)

        return predictions[: self.caps.struggle_predictions]

    def _upcoming_topics(
        self,
        progress: Optional[CurrentProgress],
        catalog: CurriculumCatalog,
    ) -> List[Topic]:
        if progress is None or not progress.current_topic or not progress.course_id:
            return []
        course = catalog.get_course(progress.course_id)
        if course is None:
            return []
        return catalog.topics_after(course, progress.current_topic, limit=self.caps.upcoming_topics)

    def _prerequisite_predictions(
        self,
        upcoming: List[Topic],
        history: List[AssessmentRecord],
        catalog: CurriculumCatalog,
    ) -> List[StrugglePrediction]:
        weak_topics = {
            record.topic
            for record in history
            if record.topic and record.score is not None and record.score < self.settings.gap_score
        }

        predictions: List[StrugglePrediction] = []
        for topic in upcoming:
            if not topic.prerequisites:
                continue
            weak_prerequisites = [prereq for prereq in topic.prerequisites if prereq in weak_topics]
            if not weak_prerequisites:
                continue
            predictions.append(
                StrugglePrediction(
                    topic_id=topic.id,
                    title=topic.title,
                    confidence=len(weak_prerequisites) / len(topic.prerequisites),
                    reason=(
                        "Based on difficulty with prerequisites: "
                        + ", ".join(weak_prerequisites)
                    ),
                    recommended_preparation=preparation_for_topic(
                        topic, weak_prerequisites, catalog
                    ),
                    source="prerequisites",
                )
            )
        return predictions

    async def _service_predictions(
        self,
        history: List[AssessmentRecord],
        upcoming: List[Topic],
    ) -> List[StrugglePrediction]:
        if self.client is None:
            return []
        try:
            return await asyncio.wait_for(
                self.client.predict(history, upcoming),
                timeout=self.client.time_budget,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Struggle prediction service exceeded %.1fs budget; using prerequisite analysis only",
                self.client.time_budget,
            )
        except StrugglePredictionServiceError as exc:
            logger.warning("Struggle prediction service unavailable: %s", exc)
        except Exception:
            logger.exception("Unexpected struggle prediction service failure")
        return []


def preparation_for_topic(
    topic: Topic,
    weak_prerequisites: Sequence[str],
    catalog: CurriculumCatalog,
) -> List[str]:
    """Review steps for each weak prerequisite, then the topic's first resource and quiz."""

    steps: List[str] = []
    for prereq_id in weak_prerequisites:
        prereq = catalog.find_topic(prereq_id)
        steps.append(f"Review {prereq.title if prereq else prereq_id}")
    if topic.resources:
        resource = topic.resources[0]
        steps.append(f"Preview the resource: {resource.title or resource.id or topic.title}")
    if topic.quizzes:
        quiz = topic.quizzes[0]
        steps.append(f"Try the practice quiz: {quiz.title or quiz.id or topic.title}")
    return steps


__all__ = ["StrugglePredictor", "preparation_for_topic"]
