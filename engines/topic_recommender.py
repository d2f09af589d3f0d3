"""Next-topic recommendations combining remediation, sequence and exploration."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from curriculum import CurriculumCatalog
from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import Course, CurrentProgress, PerformanceAnalysis, TopicRecommendation

logger = logging.getLogger(__name__)


class TopicRecommender:
    """Rank upcoming topics: gap remediation, then curriculum order, then exploration."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.caps = self.settings.caps

    def recommend_next_topics(
        self,
        analysis: PerformanceAnalysis,
        progress: Optional[CurrentProgress],
        courses: Sequence[Course],
    ) -> List[TopicRecommendation]:
        catalog = CurriculumCatalog(courses)
        try:
            return self._recommend(analysis, progress, catalog)
        except Exception:
            logger.exception("Topic recommendation failed; using sequence defaults")
            return default_next_topics(progress, catalog, self.settings)

    # ------------------------------------------------------------------
    def _recommend(
        self,
        analysis: PerformanceAnalysis,
        progress: Optional[CurrentProgress],
        catalog: CurriculumCatalog,
    ) -> List[TopicRecommendation]:
        course = catalog.get_course(progress.course_id) if progress else None
        if progress is None or not progress.current_topic or course is None:
            return starting_topics(catalog, self.caps.starting_topics)

        completed = progress.completed
        recommendations = self._gap_topics(analysis, completed, catalog)
        recommendations = _merge_unique(
            recommendations,
            self._next_logical_topics(course, progress.current_topic, completed, catalog),
        )
        recommendations = recommendations[: self.caps.next_topics]

        if len(recommendations) < self.caps.min_next_topics:
            recommendations = _merge_unique(
                recommendations,
                self._exploration_topics(analysis, completed | {progress.current_topic}, catalog),
            )

        return recommendations[: self.caps.next_topics]

    def _gap_topics(
        self,
        analysis: PerformanceAnalysis,
        completed: Set[str],
        catalog: CurriculumCatalog,
    ) -> List[TopicRecommendation]:
        # gap order is first-seen order from the analysis, not severity
        open_gaps = [gap for gap in analysis.knowledge_gaps if gap.topic not in completed]
        recommendations: List[TopicRecommendation] = []
        for gap in open_gaps[: self.caps.gap_topics]:
            topic = catalog.find_topic(gap.topic)
            recommendations.append(
                TopicRecommendation(
                    topic_id=gap.topic,
                    title=topic.title if topic else None,
                    reason=f"This addresses a knowledge gap where you scored {round(gap.score)}%",
                    priority="high",
                    type="remedial",
                )
            )
        return recommendations

    def _next_logical_topics(
        self,
        course: Course,
        current_topic: str,
        completed: Set[str],
        catalog: CurriculumCatalog,
    ) -> List[TopicRecommendation]:
        upcoming = [
            topic
            for topic in catalog.topics_after(course, current_topic)
            if topic.id not in completed
        ]
        return [
            TopicRecommendation(
                topic_id=topic.id,
                title=topic.title,
                reason="This is the next topic in your course sequence",
                priority="medium",
                type="sequential",
            )
            for topic in upcoming[: self.caps.next_topics]
        ]

    def _exploration_topics(
        self,
        analysis: PerformanceAnalysis,
        excluded: Set[str],
        catalog: CurriculumCatalog,
    ) -> List[TopicRecommendation]:
        strengths = set(analysis.strengths)
        recommendations: List[TopicRecommendation] = []
        for topic in catalog.adjacent_topics(analysis.strengths):
            if topic.id in excluded or topic.id in strengths:
                continue
            anchor = next(
                (prereq for prereq in topic.prerequisites if prereq in strengths),
                None,
            )
            reason = (
                f"This builds on your strength in {anchor}"
                if anchor
                else "This extends an area where you perform strongly"
            )
            recommendations.append(
                TopicRecommendation(
                    topic_id=topic.id,
                    title=topic.title,
                    reason=reason,
                    priority="low",
                    type="exploration",
                )
            )
        return recommendations


def _merge_unique(
    first: List[TopicRecommendation],
    second: List[TopicRecommendation],
) -> List[TopicRecommendation]:
    seen = {item.topic_id for item in first}
    merged = list(first)
    for item in second:
        if item.topic_id in seen:
            continue
        seen.add(item.topic_id)
        merged.append(item)
    return merged


def starting_topics(catalog: CurriculumCatalog, limit: int) -> List[TopicRecommendation]:
    return [
        TopicRecommendation(
            topic_id=topic.id,
            title=topic.title,
            reason="A good starting point with no prerequisites",
            priority="medium",
            type="starting",
        )
        for topic in catalog.starting_topics(limit)
    ]


def default_next_topics(
    progress: Optional[CurrentProgress],
    catalog: CurriculumCatalog,
    settings: Optional[EngineSettings] = None,
) -> List[TopicRecommendation]:
    """Recommend from ``CurrentProgress`` alone: the next uncompleted topic in sequence."""

    settings = settings or DEFAULT_SETTINGS
    try:
        course = catalog.get_course(progress.course_id) if progress else None
        if progress is None or not progress.current_topic or course is None:
            return starting_topics(catalog, settings.caps.starting_topics)

        completed = progress.completed
        for topic in catalog.topics_after(course, progress.current_topic):
            if topic.id in completed:
                continue
            return [
                TopicRecommendation(
                    topic_id=topic.id,
                    title=topic.title,
                    reason="Continue with the next topic in your course",
                    priority="medium",
                    type="default",
                )
            ]
        return []
    except Exception:
        logger.exception("Default topic recommendation failed")
        return []


__all__ = ["TopicRecommender", "default_next_topics", "starting_topics"]
