"""Level thresholds and computation.

The table maps cumulative XP to a level number. It must start at 0 XP for
level 1 so every user has a level, and both level numbers and thresholds must
strictly increase. A malformed table is rejected when it is loaded.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from perks.errors import InvalidLevelTable


class LevelDefinition(BaseModel):
    level_number: int = Field(ge=1)
    title: str
    required_xp: int = Field(ge=0)
    icon: str = ""
    color: str = ""


DEFAULT_LEVELS: list[dict[str, Any]] = [
    {"level_number": 1, "title": "Neuling", "required_xp": 0, "icon": "🌱", "color": "#10B981"},
    {"level_number": 2, "title": "Anfänger", "required_xp": 100, "icon": "🔰", "color": "#3B82F6"},
    {"level_number": 3, "title": "Lernender", "required_xp": 250, "icon": "📚", "color": "#6366F1"},
    {"level_number": 4, "title": "Fortgeschrittener", "required_xp": 450, "icon": "⭐", "color": "#8B5CF6"},
    {"level_number": 5, "title": "Explorer", "required_xp": 700, "icon": "🧭", "color": "#F59E0B"},
    {"level_number": 6, "title": "Spezialist", "required_xp": 1000, "icon": "🎯", "color": "#EF4444"},
    {"level_number": 7, "title": "Experte", "required_xp": 1350, "icon": "💎", "color": "#06B6D4"},
    {"level_number": 8, "title": "Meister", "required_xp": 1750, "icon": "👑", "color": "#8B5CF6"},
    {"level_number": 9, "title": "Profi", "required_xp": 2200, "icon": "🏆", "color": "#F59E0B"},
    {"level_number": 10, "title": "Sensei", "required_xp": 2700, "icon": "🥇", "color": "#EF4444"},
]


class LevelTable:
    """Immutable, validated list of level definitions."""

    def __init__(self, levels: Iterable[LevelDefinition | dict[str, Any]]) -> None:
        try:
            parsed = [lv if isinstance(lv, LevelDefinition) else LevelDefinition(**lv) for lv in levels]
        except ValidationError as exc:
            raise InvalidLevelTable(f"Malformed level definition: {exc.errors()[0]['msg']}") from exc
        _validate(parsed)
        self._levels: tuple[LevelDefinition, ...] = tuple(parsed)

    @classmethod
    def default(cls) -> LevelTable:
        return cls(DEFAULT_LEVELS)

    @property
    def levels(self) -> tuple[LevelDefinition, ...]:
        return self._levels

    @property
    def max_level(self) -> LevelDefinition:
        return self._levels[-1]

    def get(self, level_number: int) -> LevelDefinition | None:
        for lv in self._levels:
            if lv.level_number == level_number:
                return lv
        return None

    def definition_for(self, total_xp: int) -> LevelDefinition:
        """Highest level whose threshold is at or below total_xp."""
        current = self._levels[0]
        for lv in self._levels:
            if total_xp >= lv.required_xp:
                current = lv
            else:
                break
        return current

    def derive_level(self, total_xp: int) -> int:
        return self.definition_for(total_xp).level_number

    def levels_between(self, old_level: int, new_level: int) -> list[int]:
        """Level numbers crossed going from old_level to new_level (exclusive, inclusive)."""
        return [lv.level_number for lv in self._levels if old_level < lv.level_number <= new_level]

    def level_progress(self, total_xp: int) -> dict[str, Any]:
        """Progress within the current level.

        At max level the next threshold is the user's own total, so progress
        saturates at 100%.
        """
        current = self.definition_for(total_xp)
        idx = self._levels.index(current)
        current_level_xp = total_xp - current.required_xp

        if idx + 1 < len(self._levels):
            next_def = self._levels[idx + 1]
            next_level_xp = next_def.required_xp - current.required_xp
        else:
            next_def = current
            next_level_xp = current_level_xp

        if next_level_xp == 0:
            percent = 100.0
        else:
            percent = min(100.0, round(current_level_xp / next_level_xp * 100, 2))

        return {
            "level": current.level_number,
            "title": current.title,
            "icon": current.icon,
            "color": current.color,
            "current_level_xp": current_level_xp,
            "next_level_xp": next_level_xp,
            "percent": percent,
            "next_level": next_def.level_number,
            "next_title": next_def.title,
        }


def _validate(levels: list[LevelDefinition]) -> None:
    if not levels:
        raise InvalidLevelTable("Level table is empty")

    first = levels[0]
    if first.required_xp != 0 or first.level_number != 1:
        raise InvalidLevelTable(
            "Level table must start with level 1 at 0 XP",
            details={"level_number": first.level_number, "required_xp": first.required_xp},
        )

    for prev, cur in zip(levels, levels[1:]):
        if cur.required_xp <= prev.required_xp:
            raise InvalidLevelTable(
                f"Thresholds must strictly increase: level {cur.level_number} "
                f"requires {cur.required_xp} XP after {prev.required_xp}",
                details={"level_number": cur.level_number, "required_xp": cur.required_xp},
            )
        if cur.level_number <= prev.level_number:
            raise InvalidLevelTable(
                f"Level numbers must strictly increase: {cur.level_number} after {prev.level_number}",
                details={"level_number": cur.level_number},
            )
