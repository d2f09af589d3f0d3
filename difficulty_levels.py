"""Difficulty ladder used by the adaptive recommendation engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

class DifficultyLevelConfigError(ValueError):
    """Raised when a difficulty ladder definition is invalid."""

@dataclass(frozen=True)
class DifficultyLevel:
    """Immutable representation of one rung of the ladder."""

    id: str
    label: str

_DEFAULT_LEVELS = (
    DifficultyLevel("beginner", "Beginner"),
    DifficultyLevel("intermediate", "Intermediate"),
    DifficultyLevel("advanced", "Advanced"),
    DifficultyLevel("expert", "Expert"),
)

class DifficultyLadder:
    """Totally ordered difficulty levels, lowest first."""

    def __init__(self, levels: Optional[Sequence[DifficultyLevel]] = None) -> None:
        levels = list(levels) if levels is not None else list(_DEFAULT_LEVELS)
        if not levels:
            raise DifficultyLevelConfigError("Difficulty ladder may not be empty")

        seen: set[str] = set()
        for level in levels:
            if not level.id.strip():
                raise DifficultyLevelConfigError("Difficulty level ids must be non-empty")
            if level.id in seen:
                raise DifficultyLevelConfigError(f"Duplicate difficulty level id: {level.id}")
            seen.add(level.id)

        self._levels: tuple[DifficultyLevel, ...] = tuple(levels)

    # ------------------------------------------------------------------
    def sequence(self) -> Sequence[str]:
        """Return the level identifiers in ascending order."""

        return tuple(level.id for level in self._levels)

    def lowest_level(self) -> str:
        return self._levels[0].id

    def index(self, level_id: str) -> int:
        """Return the position of ``level_id`` on the ladder."""

        for idx, level in enumerate(self._levels):
            if level.id == level_id:
                return idx
        raise ValueError(f"Unknown difficulty level: {level_id}")

    def label(self, level_id: str) -> str:
        """Display label for ``level_id``; unknown ids are returned unchanged."""

        level = self.get(level_id)
        return level.label if level else level_id

    def get(self, level_id: str) -> Optional[DifficultyLevel]:
        for level in self._levels:
            if level.id == level_id:
                return level
        return None

    def normalize(self, level_id: Optional[str]) -> str:
        """Map free-form input onto a known level, defaulting to the lowest rung."""

        if level_id is None:
            return self.lowest_level()
        candidate = str(level_id).strip().lower()
        if self.get(candidate) is None:
            return self.lowest_level()
        return candidate

    def step_up(self, level_id: str) -> Optional[str]:
        """Return the next rung above ``level_id`` or ``None`` at the ceiling."""

        idx = self.index(level_id)
        if idx >= len(self._levels) - 1:
            return None
        return self._levels[idx + 1].id

    def step_down(self, level_id: str) -> Optional[str]:
        """Return the rung below ``level_id`` or ``None`` at the floor."""

        idx = self.index(level_id)
        if idx <= 0:
            return None
        return self._levels[idx - 1].id

DIFFICULTY_LADDER = DifficultyLadder()
"""Shared ladder: beginner -> intermediate -> advanced -> expert."""
