from engines.performance_analyzer import PerformanceAnalyzer
from engines.practice_recommender import PracticeRecommender
from schemas import coerce_courses


def _suggest(courses, history):
    analysis = PerformanceAnalyzer().analyze(history)
    return PracticeRecommender().suggest_practice_activities(analysis, coerce_courses(courses))


def test_gap_practice_precedes_strength_practice(courses, make_history):
    history = make_history(("recursion", 95), ("loops", 35))

    suggestions = _suggest(courses, history)

    assert [(s.type, s.activity_id, s.priority) for s in suggestions] == [
        ("quiz", "q-loops", "high"),
        ("exercise", "ex-loops", "high"),
        ("advanced_exercise", "adv-rec", "medium"),
    ]
    assert suggestions[0].title == "Practice Quiz: Loops"
    assert suggestions[0].reason.endswith("where you scored 35%")
    assert suggestions[2].title == "Advanced Exercise: Recursion"


def test_topics_without_activities_are_skipped(courses, make_history):
    history = make_history(("functions", 20), ("data-structures", 20), ("variables", 90))

    suggestions = _suggest(courses, history)

    assert [(s.type, s.topic) for s in suggestions] == [("quiz", "functions")]


def test_suggestions_are_capped_at_five(make_history):
    topics = [
        {
            "id": f"t{idx}",
            "quizzes": [{"id": f"q{idx}"}],
            "exercises": [{"id": f"e{idx}"}],
            "advancedExercises": [{"id": f"adv{idx}"}],
        }
        for idx in range(6)
    ]
    history = make_history(*[(f"t{idx}", 10) for idx in range(4)], ("t5", 99))

    suggestions = _suggest([{"id": "c", "topics": topics}], history)

    assert len(suggestions) == 5
    assert {s.priority for s in suggestions} == {"high"}


def test_no_history_means_no_practice(courses):
    assert _suggest(courses, []) == []


def test_activities_without_ids_are_passed_over(make_history):
    topic = {
        "id": "loops",
        "title": "Loops",
        "quizzes": [{"title": "Unnumbered quiz"}, {"id": "q-loops-2"}],
        "exercises": [{"title": "Unnumbered exercise"}],
        "advancedExercises": [{"title": "Unnumbered challenge"}],
    }
    history = make_history(("loops", 30))

    suggestions = _suggest([{"id": "c", "topics": [topic]}], history)

    assert [(s.type, s.activity_id) for s in suggestions] == [("quiz", "q-loops-2")]
