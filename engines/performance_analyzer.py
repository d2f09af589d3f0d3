"""Aggregate assessment history into strengths, weaknesses and knowledge gaps."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import (
    AssessmentRecord,
    KnowledgeGap,
    LearningTrend,
    PerformanceAnalysis,
    coerce_history,
)

logger = logging.getLogger(__name__)


class PerformanceAnalyzer:
    """Derive a :class:`PerformanceAnalysis` from raw assessment records."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS

    def analyze(self, assessment_history: Optional[Iterable[Any]]) -> PerformanceAnalysis:
        """Return the analysis for ``assessment_history``; never raises."""

        try:
            return self._analyze(coerce_history(assessment_history))
        except Exception:
            logger.exception("Performance analysis failed; returning empty analysis")
            return PerformanceAnalysis.empty()

    # ------------------------------------------------------------------
    def _analyze(self, history: List[AssessmentRecord]) -> PerformanceAnalysis:
        if not history:
            return PerformanceAnalysis.empty()

        by_topic = self._group_by_topic(history)

        average_scores: Dict[str, float] = {}
        strengths: List[str] = []
        weaknesses: List[str] = []
        mastered: List[str] = []
        gaps: List[KnowledgeGap] = []

        for topic, records in by_topic.items():
            mean = sum(record.score for record in records) / len(records)
            average_scores[topic] = mean

            if mean >= self.settings.strength_score:
                strengths.append(topic)
                if mean >= self.settings.mastery_score:
                    mastered.append(topic)
            elif mean <= self.settings.gap_score:
                weaknesses.append(topic)
                gaps.append(
                    KnowledgeGap(
                        topic=topic,
                        score=mean,
                        assessment_ids=[record.id for record in records],
                    )
                )

        return PerformanceAnalysis(
            strengths=strengths,
            weaknesses=weaknesses,
            knowledge_gaps=gaps,
            mastered_topics=mastered,
            average_scores=average_scores,
            learning_trends=self._learning_trends(history),
        )

    @staticmethod
    def _group_by_topic(history: List[AssessmentRecord]) -> Dict[str, List[AssessmentRecord]]:
        # dicts keep first-seen order, which downstream gap ordering relies on
        grouped: Dict[str, List[AssessmentRecord]] = {}
        for record in history:
            if not record.topic or record.score is None:
                continue
            grouped.setdefault(record.topic, []).append(record)
        return grouped

    @staticmethod
    def _learning_trends(history: List[AssessmentRecord]) -> List[LearningTrend]:
        """Re-tag the history as assessment trend entries, keeping caller order."""

        return [
            LearningTrend(
                type="assessment",
                topic=record.topic,
                score=record.score,
                date=record.date,
                assessment_id=record.id,
            )
            for record in history
            if record.score is not None
        ]


__all__ = ["PerformanceAnalyzer"]
