"""Recommendation pipeline orchestrator.

Runs the performance analysis once, feeds it to the topic, resource,
practice, difficulty and struggle components, and assembles the
:class:`~schemas.RecommendationBundle`. Struggle prediction is the only stage
that may wait on the network, so it runs as a task while the synchronous
stages compute. Any unrecovered error yields a degraded bundle built from the
current progress and the raw catalog.
"""

from __future__ import annotations

import asyncio
import json
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

from curriculum import CurriculumCatalog
from engines.difficulty_manager import DifficultyManager
from engines.performance_analyzer import PerformanceAnalyzer
from engines.practice_recommender import PracticeRecommender
from engines.resource_recommender import ResourceRecommender, general_resources
from engines.struggle_predictor import StrugglePredictor
from engines.text_generation import StrugglePredictionClient
from engines.topic_recommender import TopicRecommender, default_next_topics
from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import (
    Course,
    CurrentProgress,
    DifficultyAdjustment,
    RecommendationBundle,
    coerce_courses,
    coerce_progress,
    coerce_student,
)

logger = logging.getLogger(__name__)


def _log_json(event: str, payload: Dict[str, Any]) -> None:
    """Emit a structured JSON log line for pipeline milestones."""

    record = {"event": event, **payload}
    try:
        message = json.dumps(record, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        fallback = {
            "event": event,
            "error": "serialization_failed",
            "payload_repr": repr(payload),
        }
        message = json.dumps(fallback, ensure_ascii=False, sort_keys=True)
    logger.info(message)


class RecommendationOrchestrator:
    """Sequence the recommendation components and enforce the non-throwing contract."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        prediction_client: Optional[StrugglePredictionClient] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Thresholds, caps and ladder shared by every component.
            prediction_client: Client for the struggle-prediction service; when
                omitted, struggle prediction relies on prerequisite analysis only.
        """
        self.settings = settings or DEFAULT_SETTINGS
        self.analyzer = PerformanceAnalyzer(self.settings)
        self.difficulty_manager = DifficultyManager(self.settings)
        self.topic_recommender = TopicRecommender(self.settings)
        self.resource_recommender = ResourceRecommender(self.settings)
        self.practice_recommender = PracticeRecommender(self.settings)
        self.struggle_predictor = StrugglePredictor(prediction_client, self.settings)

    async def generate(
        self,
        student: Any,
        courses: Any,
        current_progress: Any,
    ) -> RecommendationBundle:
        """Return the recommendation bundle; never raises except on cancellation."""

        start_time = perf_counter()
        try:
            bundle = await self._generate(student, courses, current_progress)
        except Exception:
            logger.exception("Recommendation pipeline failed; returning default recommendations")
            bundle = self.default_recommendations(current_progress, courses)
            _log_json(
                "recommendations_degraded",
                {"latency_ms": int((perf_counter() - start_time) * 1000)},
            )
            return bundle

        _log_json(
            "recommendations_generated",
            {
                "latency_ms": int((perf_counter() - start_time) * 1000),
                "next_topics": len(bundle.next_topics),
                "resources": len(bundle.resource_recommendations),
                "practice": len(bundle.practice_suggestions),
                "difficulty": bundle.adjusted_difficulty.level,
                "difficulty_change": bundle.adjusted_difficulty.change,
                "struggle_areas": len(bundle.predicted_struggle_areas),
            },
        )
        return bundle

    # ------------------------------------------------------------------
    async def _generate(
        self,
        raw_student: Any,
        raw_courses: Any,
        raw_progress: Any,
    ) -> RecommendationBundle:
        student = coerce_student(raw_student)
        courses = coerce_courses(raw_courses)
        progress = coerce_progress(raw_progress)
        logger.debug("Generating recommendations for student %s", student.id)

        analysis = self.analyzer.analyze(student.assessment_history)

        prediction_task = asyncio.create_task(
            self.struggle_predictor.predict_struggle_areas(student, progress, courses)
        )
        try:
            # let the prediction task reach its first suspension before the sync stages
            await asyncio.sleep(0)
            next_topics = self.topic_recommender.recommend_next_topics(analysis, progress, courses)
            resources = self.resource_recommender.recommend_resources(analysis, courses)
            practice = self.practice_recommender.suggest_practice_activities(analysis, courses)
            difficulty = self.difficulty_manager.adjust_difficulty(analysis, progress)
        except BaseException:
            prediction_task.cancel()
            raise
        struggle_areas = await prediction_task

        return RecommendationBundle(
            next_topics=next_topics,
            resource_recommendations=resources,
            practice_suggestions=practice,
            adjusted_difficulty=difficulty,
            predicted_struggle_areas=struggle_areas,
        )

    # ------------------------------------------------------------------
    def default_recommendations(self, raw_progress: Any, raw_courses: Any) -> RecommendationBundle:
        """Generic bundle from progress and catalog only: no analysis, no service call."""

        progress = self._safe_progress(raw_progress)
        catalog = CurriculumCatalog(self._safe_courses(raw_courses))

        try:
            resources = general_resources(catalog, self.settings.caps.min_resources)
        except Exception:
            logger.exception("Default resource selection failed")
            resources = []

        return RecommendationBundle(
            next_topics=default_next_topics(progress, catalog, self.settings),
            resource_recommendations=resources,
            practice_suggestions=[],
            adjusted_difficulty=DifficultyAdjustment(
                level=progress.current_difficulty,
                change="maintain",
                reason="Unable to compute an optimal difficulty adjustment",
            ),
            predicted_struggle_areas=[],
            degraded=True,
        )

    @staticmethod
    def _safe_progress(raw_progress: Any) -> CurrentProgress:
        try:
            return coerce_progress(raw_progress)
        except Exception:
            logger.warning("Current progress could not be read; assuming a fresh start")
            return CurrentProgress()

    @staticmethod
    def _safe_courses(raw_courses: Any) -> List[Course]:
        try:
            return coerce_courses(raw_courses)
        except Exception:
            logger.warning("Course catalog could not be read; continuing without it")
            return []


__all__ = ["RecommendationOrchestrator"]
