"""Tests for learning-resource recommendations."""

from __future__ import annotations

from engines.performance_analyzer import PerformanceAnalyzer
from engines.resource_recommender import ResourceRecommender
from schemas import coerce_courses


def _recommend(courses, history):
    analysis = PerformanceAnalyzer().analyze(history)
    return ResourceRecommender().recommend_resources(analysis, coerce_courses(courses))


def test_gap_resources_use_exact_difficulty_tags(courses, make_history):
    recommendations = _recommend(courses, make_history(("loops", 40)))

    assert [rec.id for rec in recommendations] == [
        "r-loop-1",
        "r-loop-3",
        "r-var-1",
        "r-fn-1",
        "r-rec-1",
    ]
    assert [rec.priority for rec in recommendations] == ["high", "high", "low", "low", "low"]
    assert recommendations[0].topic_id == "loops"
    assert recommendations[0].reason == "This will help strengthen your understanding of Loops"


def test_mastered_topics_get_one_deepening_resource(courses, make_history):
    recommendations = _recommend(courses, make_history(("recursion", 95)))

    first = recommendations[0]
    assert (first.id, first.priority, first.difficulty) == ("r-rec-2", "medium", "expert")
    assert first.reason == "This will deepen your expertise in Recursion"
    assert [rec.id for rec in recommendations[1:]] == ["r-var-1", "r-loop-1", "r-fn-1", "r-rec-1"]


def test_mastered_topic_without_advanced_resources_contributes_nothing(courses, make_history):
    recommendations = _recommend(courses, make_history(("functions", 95)))

    assert {rec.priority for rec in recommendations} == {"low"}
    assert len(recommendations) == 5


def test_no_history_pads_with_general_resources(courses):
    recommendations = _recommend(courses, [])

    assert [rec.id for rec in recommendations] == ["r-var-1", "r-loop-1", "r-fn-1", "r-rec-1", "r-ds-1"]
    assert recommendations[0].reason.startswith("A general resource")


def test_small_catalog_reuses_later_resources_before_giving_up():
    courses = [
        {
            "id": "tiny",
            "topics": [
                {
                    "id": "only",
                    "resources": [
                        {"id": "a", "difficulty": "beginner"},
                        {"id": "b", "difficulty": "advanced"},
                    ],
                }
            ],
        }
    ]

    assert [rec.id for rec in _recommend(courses, [])] == ["a", "b"]


def test_unnamed_resources_are_not_repeated_by_padding(make_history):
    courses = [
        {
            "id": "c",
            "topics": [
                {
                    "id": "t",
                    "resources": [
                        {"difficulty": "beginner"},
                        {"difficulty": "beginner", "type": "video"},
                    ],
                }
            ],
        }
    ]

    recommendations = _recommend(courses, make_history(("t", 20)))

    assert [(rec.type, rec.priority) for rec in recommendations] == [
        (None, "high"),
        ("video", "high"),
    ]


def test_list_is_capped_at_seven(make_history):
    topics = [
        {
            "id": f"t{idx}",
            "resources": [
                {"id": f"t{idx}-b{n}", "difficulty": "beginner"} for n in range(3)
            ]
            + [{"id": f"t{idx}-x{n}", "difficulty": "expert"} for n in range(2)],
        }
        for idx in range(6)
    ]
    history = make_history(("t0", 10), ("t1", 10), ("t2", 10), ("t3", 95), ("t4", 95))

    recommendations = _recommend([{"id": "big", "topics": topics}], history)

    assert len(recommendations) == 7
    assert [rec.id for rec in recommendations[:6]] == [
        "t0-b0",
        "t0-b1",
        "t1-b0",
        "t1-b1",
        "t2-b0",
        "t2-b1",
    ]
    assert recommendations[6].id == "t3-x0"


def test_unknown_resource_fields_are_preserved(make_history):
    courses = [
        {
            "id": "c",
            "topics": [
                {
                    "id": "t",
                    "title": "Topic",
                    "resources": [
                        {
                            "id": "r",
                            "title": "Video",
                            "url": "https://example.org/video",
                            "difficulty": "beginner",
                            "durationMinutes": 12,
                        }
                    ],
                }
            ],
        }
    ]

    recommendations = _recommend(courses, make_history(("t", 20)))

    dumped = recommendations[0].model_dump(by_alias=True)
    assert dumped["durationMinutes"] == 12
    assert dumped["topicId"] == "t"
    assert dumped["url"] == "https://example.org/video"
