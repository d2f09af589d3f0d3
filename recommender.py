"""Public entry points of the adaptive learning recommendation engine."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Optional

from engines.performance_analyzer import PerformanceAnalyzer
from engines.recommendation_orchestrator import RecommendationOrchestrator
from engines.text_generation import StrugglePredictionClient
from env_validation import DEFAULT_SETTINGS, EngineSettings, StrugglePredictionConfig
from schemas import PerformanceAnalysis, RecommendationBundle


def build_orchestrator(
    settings: Optional[EngineSettings] = None,
    prediction_config: Optional[StrugglePredictionConfig] = None,
) -> RecommendationOrchestrator:
    """Create an orchestrator wired to the struggle-prediction service from the environment."""

    config = prediction_config or StrugglePredictionConfig.from_env()
    settings = settings or DEFAULT_SETTINGS
    client = StrugglePredictionClient(
        config,
        max_predictions=settings.caps.service_predictions,
    )
    return RecommendationOrchestrator(settings, prediction_client=client)


async def generate_recommendations(
    student: Any,
    courses: Any,
    current_progress: Any,
    *,
    orchestrator: Optional[RecommendationOrchestrator] = None,
) -> RecommendationBundle:
    """Build the personalized recommendation bundle for one student.

    ``student``, ``courses`` and ``current_progress`` may be schema instances
    or plain mappings with camelCase or snake_case keys. The call never
    raises; on failure the bundle is generic and flagged ``degraded``.
    """

    orchestrator = orchestrator or build_orchestrator()
    return await orchestrator.generate(student, courses, current_progress)


def generate_recommendations_sync(
    student: Any,
    courses: Any,
    current_progress: Any,
    *,
    orchestrator: Optional[RecommendationOrchestrator] = None,
) -> RecommendationBundle:
    """Blocking wrapper for callers without a running event loop."""

    return asyncio.run(
        generate_recommendations(
            student,
            courses,
            current_progress,
            orchestrator=orchestrator,
        )
    )


def analyze_performance(
    assessment_history: Optional[Iterable[Any]],
    settings: Optional[EngineSettings] = None,
) -> PerformanceAnalysis:
    """Diagnose strengths, weaknesses and knowledge gaps without recommending anything."""

    return PerformanceAnalyzer(settings).analyze(assessment_history)


__all__ = [
    "analyze_performance",
    "build_orchestrator",
    "generate_recommendations",
    "generate_recommendations_sync",
]
