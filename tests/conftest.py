import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def build_courses():
    """Two-course catalog shaped the way the course service hands it over."""

    return [
        {
            "id": "cs101",
            "title": "Intro to Programming",
            "topics": [
                {
                    "id": "variables",
                    "title": "Variables",
                    "prerequisites": [],
                    "keyConcepts": ["assignment", "types"],
                    "resources": [
                        {"id": "r-var-1", "title": "Variables video", "type": "video", "difficulty": "beginner"},
                        {"id": "r-var-2", "title": "Typing deep dive", "type": "article", "difficulty": "advanced"},
                    ],
                    "quizzes": [{"id": "q-var", "title": "Variables quiz"}],
                    "exercises": [{"id": "ex-var"}],
                },
                {
                    "id": "loops",
                    "title": "Loops",
                    "prerequisites": ["variables"],
                    "keyConcepts": ["for", "while"],
                    "resources": [
                        {"id": "r-loop-1", "title": "Loop basics", "difficulty": "beginner"},
                        {"id": "r-loop-2", "title": "Loop patterns", "difficulty": "Intermediate"},
                        {"id": "r-loop-3", "title": "Nested loops", "difficulty": "intermediate"},
                        {"id": "r-loop-4", "title": "Loop invariants", "difficulty": "advanced"},
                    ],
                    "quizzes": [{"id": "q-loops", "title": "Loops quiz"}],
                    "exercises": [{"id": "ex-loops"}],
                },
                {
                    "id": "functions",
                    "title": "Functions",
                    "prerequisites": ["variables"],
                    "resources": [{"id": "r-fn-1", "title": "Functions 101", "difficulty": "beginner"}],
                    "quizzes": [{"id": "q-fn"}],
                },
                {
                    "id": "recursion",
                    "title": "Recursion",
                    "prerequisites": ["functions", "loops"],
                    "keyConcepts": ["base case", "call stack"],
                    "resources": [
                        {"id": "r-rec-1", "title": "Recursion intro", "difficulty": "beginner"},
                        {"id": "r-rec-2", "title": "Tail calls", "difficulty": "expert"},
                    ],
                    "advancedExercises": [{"id": "adv-rec", "title": "Tower of Hanoi"}],
                },
                {
                    "id": "data-structures",
                    "title": "Data Structures",
                    "prerequisites": ["loops"],
                    "resources": [{"id": "r-ds-1", "title": "Lists and maps", "difficulty": "intermediate"}],
                },
                {
                    "id": "algorithms",
                    "title": "Algorithms",
                    "prerequisites": ["recursion", "data-structures"],
                },
            ],
        },
        {
            "id": "web101",
            "title": "Web Basics",
            "topics": [
                {
                    "id": "html",
                    "title": "HTML",
                    "prerequisites": [],
                    "resources": [{"id": "r-html-1", "title": "HTML tags", "difficulty": "beginner"}],
                },
                {
                    "id": "css",
                    "title": "CSS",
                    "prerequisites": ["html"],
                    "resources": [{"id": "r-css-1", "title": "Selectors", "difficulty": "beginner"}],
                },
            ],
        },
    ]


def build_history(*entries):
    """Turn ``(topic, score)`` pairs into assessment records with ids and dates."""

    return [
        {
            "id": f"a{index}",
            "topic": topic,
            "score": score,
            "date": f"2024-01-{index + 1:02d}",
        }
        for index, (topic, score) in enumerate(entries)
    ]


@pytest.fixture
def courses():
    return build_courses()


@pytest.fixture
def make_history():
    return build_history


@pytest.fixture
def anyio_backend():
    """Force anyio to use asyncio backend for async tests."""

    return "asyncio"
