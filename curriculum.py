"""Read-only index over the course catalog handed to the engine."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from schemas import Course, Topic


class CurriculumCatalog:
    """Lookup helpers for courses, topics and prerequisite edges.

    Topic ids are treated as globally unique; when two courses declare the
    same id the first occurrence in catalog order wins, matching how the
    recommenders locate a topic.
    """

    def __init__(self, courses: Sequence[Course]) -> None:
        self._courses: List[Course] = list(courses)
        self._course_index: Dict[str, Course] = {}
        self._topic_index: Dict[str, Tuple[Course, Topic]] = {}
        self._dependents: Dict[str, List[str]] = {}

        for course in self._courses:
            self._course_index.setdefault(course.id, course)
            for topic in course.topics:
                self._topic_index.setdefault(topic.id, (course, topic))
                for prereq in topic.prerequisites:
                    dependents = self._dependents.setdefault(prereq, [])
                    if topic.id not in dependents:
                        dependents.append(topic.id)

    # ------------------------------------------------------------------
    def get_course(self, course_id: Optional[str]) -> Optional[Course]:
        if course_id is None:
            return None
        return self._course_index.get(course_id)

    def find_topic(self, topic_id: str) -> Optional[Topic]:
        entry = self._topic_index.get(topic_id)
        return entry[1] if entry else None

    def course_of(self, topic_id: str) -> Optional[Course]:
        entry = self._topic_index.get(topic_id)
        return entry[0] if entry else None

    def iter_topics(self) -> Iterator[Topic]:
        """Yield every topic in catalog order."""

        for course in self._courses:
            for topic in course.topics:
                yield topic

    # ------------------------------------------------------------------
    def starting_topics(self, limit: Optional[int] = None) -> List[Topic]:
        """Topics without prerequisites, in catalog order."""

        starters = [topic for topic in self.iter_topics() if not topic.prerequisites]
        return starters if limit is None else starters[:limit]

    def topic_position(self, course: Course, topic_id: str) -> int:
        for idx, topic in enumerate(course.topics):
            if topic.id == topic_id:
                return idx
        return -1

    def topics_after(
        self,
        course: Course,
        topic_id: str,
        limit: Optional[int] = None,
    ) -> List[Topic]:
        """Topics following ``topic_id`` in the course sequence."""

        position = self.topic_position(course, topic_id)
        if position == -1:
            return []
        following = course.topics[position + 1 :]
        return following if limit is None else following[:limit]

    def dependents_of(self, topic_id: str) -> List[Topic]:
        """Topics that list ``topic_id`` as a prerequisite."""

        found: List[Topic] = []
        for dependent_id in self._dependents.get(topic_id, []):
            topic = self.find_topic(dependent_id)
            if topic is not None:
                found.append(topic)
        return found

    def adjacent_topics(self, topic_ids: Iterable[str]) -> List[Topic]:
        """Topics building on ``topic_ids``: dependents first, then the next topic in sequence."""

        adjacent: List[Topic] = []
        seen: Set[str] = set()
        for topic_id in topic_ids:
            candidates = list(self.dependents_of(topic_id))
            course = self.course_of(topic_id)
            if course is not None:
                candidates.extend(self.topics_after(course, topic_id, limit=1))
            for candidate in candidates:
                if candidate.id in seen:
                    continue
                seen.add(candidate.id)
                adjacent.append(candidate)
        return adjacent
