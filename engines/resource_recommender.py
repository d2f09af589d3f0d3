"""Learning-resource recommendations driven by knowledge gaps and mastery."""

from __future__ import annotations

import json
import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from curriculum import CurriculumCatalog
from env_validation import DEFAULT_SETTINGS, EngineSettings
from schemas import (
    Course,
    LearningResource,
    PerformanceAnalysis,
    ResourceRecommendation,
    Topic,
)

logger = logging.getLogger(__name__)

REMEDIAL_DIFFICULTIES = ("beginner", "intermediate")
DEEPENING_DIFFICULTIES = ("advanced", "expert")


def _resource_key(topic_id: str, resource: LearningResource) -> Tuple[str, str]:
    identity = resource.id or resource.url or resource.title
    if not identity:
        # recommendation fields are excluded so a recommendation keys like its source
        payload = resource.model_dump(exclude={"topic_id", "reason", "priority"})
        identity = json.dumps(payload, sort_keys=True, default=str)
    return topic_id, identity


def _filter_by_difficulty(
    resources: Iterable[LearningResource],
    difficulties: Sequence[str],
) -> List[LearningResource]:
    """Exact, case-sensitive match on the ``difficulty`` tag; untagged resources never match."""

    return [resource for resource in resources if resource.difficulty in difficulties]


def _recommend(
    resource: LearningResource,
    topic_id: str,
    reason: str,
    priority: str,
) -> ResourceRecommendation:
    payload = resource.model_dump()
    payload.update(topic_id=topic_id, reason=reason, priority=priority)
    return ResourceRecommendation.model_validate(payload)


class ResourceRecommender:
    """Pick remedial resources for gaps, deepening resources for mastered topics."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.caps = self.settings.caps

    def recommend_resources(
        self,
        analysis: PerformanceAnalysis,
        courses: Sequence[Course],
    ) -> List[ResourceRecommendation]:
        try:
            return self._recommend(analysis, CurriculumCatalog(courses))
        except Exception:
            logger.exception("Resource recommendation failed")
            return []

    # ------------------------------------------------------------------
    def _recommend(
        self,
        analysis: PerformanceAnalysis,
        catalog: CurriculumCatalog,
    ) -> List[ResourceRecommendation]:
        recommendations = self._gap_resources(analysis, catalog)
        recommendations.extend(self._mastery_resources(analysis, catalog))

        shortfall = self.caps.min_resources - len(recommendations)
        if shortfall > 0:
            used = {_resource_key(item.topic_id or "", item) for item in recommendations}
            recommendations.extend(general_resources(catalog, shortfall, exclude=used))

        return recommendations[: self.caps.resources]

    def _gap_resources(
        self,
        analysis: PerformanceAnalysis,
        catalog: CurriculumCatalog,
    ) -> List[ResourceRecommendation]:
        recommendations: List[ResourceRecommendation] = []
        for gap in analysis.knowledge_gaps[: self.caps.resource_gaps]:
            topic = catalog.find_topic(gap.topic)
            if topic is None:
                continue
            suitable = _filter_by_difficulty(topic.resources, REMEDIAL_DIFFICULTIES)
            recommendations.extend(
                _recommend(
                    resource,
                    topic.id,
                    f"This will help strengthen your understanding of {topic.title}",
                    "high",
                )
                for resource in suitable[: self.caps.resources_per_gap]
            )
        return recommendations

    def _mastery_resources(
        self,
        analysis: PerformanceAnalysis,
        catalog: CurriculumCatalog,
    ) -> List[ResourceRecommendation]:
        recommendations: List[ResourceRecommendation] = []
        for topic_id in analysis.mastered_topics[: self.caps.resource_mastered]:
            topic: Optional[Topic] = catalog.find_topic(topic_id)
            if topic is None:
                continue
            advanced = _filter_by_difficulty(topic.resources, DEEPENING_DIFFICULTIES)
            recommendations.extend(
                _recommend(
                    resource,
                    topic.id,
                    f"This will deepen your expertise in {topic.title}",
                    "medium",
                )
                for resource in advanced[: self.caps.resources_per_mastered]
            )
        return recommendations


def general_resources(
    catalog: CurriculumCatalog,
    limit: int,
    exclude: Optional[Set[Tuple[str, str]]] = None,
) -> List[ResourceRecommendation]:
    """Breadth-first pick over the catalog, skipping ``exclude``.

    Takes the first resource of each topic in catalog order, then the second
    of each, and so on until ``limit`` is reached.
    """

    if limit <= 0:
        return []
    exclude = set(exclude or set())
    picked: List[ResourceRecommendation] = []
    topics = list(catalog.iter_topics())
    depth = max((len(topic.resources) for topic in topics), default=0)

    for position in range(depth):
        for topic in topics:
            if len(picked) >= limit:
                return picked
            if position >= len(topic.resources):
                continue
            resource = topic.resources[position]
            key = _resource_key(topic.id, resource)
            if key in exclude:
                continue
            exclude.add(key)
            picked.append(
                _recommend(
                    resource,
                    topic.id,
                    f"A general resource to broaden your knowledge of {topic.title}",
                    "low",
                )
            )
    return picked


__all__ = ["ResourceRecommender", "general_resources"]
