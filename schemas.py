"""Pydantic schemas for engine inputs, derived analyses and recommendation output."""

from __future__ import annotations

import json
import logging
from datetime import date as date_type
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from difficulty_levels import DIFFICULTY_LADDER

__all__ = [
    "AssessmentRecord",
    "Student",
    "LearningResource",
    "PracticeActivity",
    "Topic",
    "Course",
    "CurrentProgress",
    "KnowledgeGap",
    "LearningTrend",
    "PerformanceAnalysis",
    "TopicRecommendation",
    "ResourceRecommendation",
    "PracticeSuggestion",
    "DifficultyAdjustment",
    "StrugglePrediction",
    "RecommendationBundle",
    "coerce_history",
    "coerce_student",
    "coerce_courses",
    "coerce_progress",
    "parse_json_array_safe",
]

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]


class _EngineModel(BaseModel):
    """Accept camelCase or snake_case keys and emit camelCase with ``by_alias``."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class _CatalogModel(_EngineModel):
    model_config = ConfigDict(extra="allow")


# ----------------------------------------------------------------------
# Inputs
# ----------------------------------------------------------------------
class AssessmentRecord(_EngineModel):
    id: Optional[str] = None
    topic: Optional[str] = None
    score: Optional[float] = Field(
        default=None,
        description="Percentage score, nominally 0-100.",
    )
    date: Optional[datetime | date_type | str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _document_id(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("id") is None and data.get("_id") is not None:
            data = {**data, "id": str(data["_id"])}
        return data

    def formatted_date(self) -> str:
        if isinstance(self.date, (datetime, date_type)):
            return self.date.strftime("%Y-%m-%d")
        if self.date:
            return str(self.date)
        return "N/A"


class Student(_EngineModel):
    id: Optional[str] = None
    assessment_history: List[AssessmentRecord] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lenient_history(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            data = dict(data)
            raw = data.pop("assessmentHistory", data.pop("assessment_history", None))
            data["assessment_history"] = coerce_history(raw)
        return data


class LearningResource(_CatalogModel):
    id: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    difficulty: Optional[str] = Field(
        default=None,
        description="Difficulty tag, matched case-sensitively against the ladder ids.",
    )


class PracticeActivity(_CatalogModel):
    id: Optional[str] = None
    title: Optional[str] = None


class Topic(_CatalogModel):
    id: str
    title: str = ""
    prerequisites: List[str] = Field(default_factory=list)
    key_concepts: List[str] = Field(default_factory=list)
    resources: List[LearningResource] = Field(default_factory=list)
    quizzes: List[PracticeActivity] = Field(default_factory=list)
    exercises: List[PracticeActivity] = Field(default_factory=list)
    advanced_exercises: List[PracticeActivity] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fill_optional_fields(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            data = dict(data)
            if data.get("title") is None:
                data["title"] = ""
            for key in (
                "prerequisites",
                "keyConcepts",
                "key_concepts",
                "resources",
                "quizzes",
                "exercises",
                "advancedExercises",
                "advanced_exercises",
            ):
                if key not in data:
                    continue
                value = data[key]
                if value is None:
                    data[key] = []
                elif isinstance(value, (list, tuple)):
                    # null entries carry nothing to recommend
                    data[key] = [item for item in value if item is not None]
        return data

    @model_validator(mode="after")
    def _default_title(self) -> "Topic":
        if not self.title:
            self.title = self.id
        return self


class Course(_CatalogModel):
    id: str
    title: Optional[str] = None
    topics: List[Topic] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _null_topics(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("topics") is None:
            data = {**data, "topics": []}
        return data


class CurrentProgress(_EngineModel):
    course_id: Optional[str] = None
    current_topic: Optional[str] = None
    current_difficulty: str = Field(default_factory=DIFFICULTY_LADDER.lowest_level)
    completed_topics: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            data = dict(data)
            for key in ("currentDifficulty", "current_difficulty"):
                if key in data:
                    data[key] = DIFFICULTY_LADDER.normalize(data[key])
            for key in ("completedTopics", "completed_topics"):
                if key in data:
                    data[key] = [str(item) for item in data[key] or []]
        return data

    @property
    def completed(self) -> set[str]:
        return set(self.completed_topics)


# ----------------------------------------------------------------------
# Derived analysis
# ----------------------------------------------------------------------
class KnowledgeGap(_EngineModel):
    topic: str
    score: float
    assessment_ids: List[Optional[str]] = Field(default_factory=list)


class LearningTrend(_EngineModel):
    type: str = "assessment"
    topic: Optional[str] = None
    score: Optional[float] = None
    date: Optional[datetime | date_type | str] = None
    assessment_id: Optional[str] = None


class PerformanceAnalysis(_EngineModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    knowledge_gaps: List[KnowledgeGap] = Field(default_factory=list)
    mastered_topics: List[str] = Field(default_factory=list)
    average_scores: Dict[str, float] = Field(default_factory=dict)
    learning_trends: List[LearningTrend] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "PerformanceAnalysis":
        return cls()


# ----------------------------------------------------------------------
# Recommendations
# ----------------------------------------------------------------------
class TopicRecommendation(_EngineModel):
    topic_id: str
    title: Optional[str] = None
    reason: str
    priority: Priority = "medium"
    type: Literal["remedial", "sequential", "exploration", "starting", "default"]


class ResourceRecommendation(LearningResource):
    topic_id: Optional[str] = None
    reason: str = ""
    priority: Priority = "low"


class PracticeSuggestion(_EngineModel):
    type: Literal["quiz", "exercise", "advanced_exercise"]
    activity_id: str
    topic: str
    title: str
    reason: str
    priority: Priority


class DifficultyAdjustment(_EngineModel):
    level: str
    change: Literal["increase", "decrease", "maintain"]
    reason: str


class StrugglePrediction(_EngineModel):
    topic_id: str
    title: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    recommended_preparation: List[str] = Field(default_factory=list)
    source: Literal["prerequisites", "model"] = "model"


class RecommendationBundle(_EngineModel):
    next_topics: List[TopicRecommendation] = Field(default_factory=list)
    resource_recommendations: List[ResourceRecommendation] = Field(default_factory=list)
    practice_suggestions: List[PracticeSuggestion] = Field(default_factory=list)
    adjusted_difficulty: DifficultyAdjustment
    predicted_struggle_areas: List[StrugglePrediction] = Field(default_factory=list)
    degraded: bool = False

    model_config = ConfigDict(frozen=True)


# ----------------------------------------------------------------------
# Boundary coercion
# ----------------------------------------------------------------------
_M = TypeVar("_M", bound=BaseModel)


def _coerce_items(raw: Optional[Iterable[Any]], model: Type[_M], label: str) -> List[_M]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, Mapping)):
        logger.warning("Expected a sequence of %s, got %s", label, type(raw).__name__)
        return []
    items: List[_M] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, model):
            items.append(entry)
            continue
        try:
            items.append(model.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Dropping malformed %s #%d: %s", label, index, exc.errors()[:1])
    return items


def coerce_history(raw: Optional[Iterable[Any]]) -> List[AssessmentRecord]:
    """Validate assessment records one by one, dropping malformed entries."""

    return _coerce_items(raw, AssessmentRecord, "assessment record")


def coerce_courses(raw: Optional[Iterable[Any]]) -> List[Course]:
    return _coerce_items(raw, Course, "course")


def coerce_student(raw: Any) -> Student:
    if isinstance(raw, Student):
        return raw
    if raw is None:
        return Student()
    return Student.model_validate(raw)


def coerce_progress(raw: Any) -> CurrentProgress:
    if isinstance(raw, CurrentProgress):
        return raw
    if raw is None:
        return CurrentProgress()
    return CurrentProgress.model_validate(raw)


# ----------------------------------------------------------------------
# Model output parsing
# ----------------------------------------------------------------------
def _find_first_json_array(text: str) -> tuple[str, int, int]:
    start = text.find("[")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    candidate = text[start : idx + 1]
                    try:
                        json.loads(candidate)
                    except ValueError:
                        break
                    return candidate, start, idx + 1
        start = text.find("[", start + 1)
    raise ValueError("No JSON array found in provided text")


def parse_json_array_safe(text: str, model: Type[_M]) -> List[_M]:
    """Parse ``text`` into a list of ``model`` with a fallback extraction pass.

    Model output often wraps the array in prose or Markdown fences, so the
    first balanced JSON array is tried when the whole text does not validate.
    Raises ``ValidationError`` or ``ValueError`` when neither attempt yields a
    valid list.
    """

    adapter = TypeAdapter(List[model])  # type: ignore[valid-type]
    first_error: Exception | None = None
    try:
        return adapter.validate_json(text)
    except (ValidationError, ValueError, TypeError) as exc:
        first_error = exc

    try:
        snippet, _, _ = _find_first_json_array(text)
    except ValueError:
        if first_error:
            raise first_error
        raise

    return adapter.validate_json(snippet)
