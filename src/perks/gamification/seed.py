"""Seed data — skills and the predefined achievement catalog."""

from __future__ import annotations

from typing import Any

DEFAULT_SKILLS: dict[str, str] = {
    "knowledge": "Wissen",
    "loyalty": "Loyalität",
    "hustle": "Fleiß",
    "teamwork": "Teamwork",
    "creativity": "Kreativität",
}

ACHIEVEMENT_SEED_DATA: list[dict[str, Any]] = [
    # Learning
    {
        "id": "first_training",
        "name": "Wissensdurst",
        "description": "Schließe deine erste Schulung ab",
        "icon": "🎓",
        "category": "learning",
        "rarity": "common",
        "conditions": [{"metric": "trainingsCompleted", "operator": "gte", "target": 1}],
        "rewards": [{"kind": "skillXp", "amount": 25, "skill_id": "knowledge"}],
    },
    {
        "id": "quarterly_learner",
        "name": "Quartals-Lerner",
        "description": "Schließe 5 Schulungen in einem Quartal ab",
        "icon": "📚",
        "category": "learning",
        "rarity": "rare",
        "conditions": [
            {"metric": "trainingsCompleted", "operator": "gte", "target": 5, "timeframe": "quarterly"},
        ],
        "rewards": [
            {"kind": "xp", "amount": 100},
            {"kind": "coins", "amount": 50},
        ],
    },
    # Attendance
    {
        "id": "punctual_week",
        "name": "Pünktlich wie die Maurer",
        "description": "Stemple 7 Tage in Folge pünktlich ein",
        "icon": "⏰",
        "category": "attendance",
        "rarity": "rare",
        "conditions": [{"metric": "consecutiveDays", "operator": "gte", "target": 7}],
        "rewards": [
            {"kind": "skillXp", "amount": 50, "skill_id": "loyalty"},
            {"kind": "coins", "amount": 25},
        ],
    },
    {
        "id": "punctual_quarter",
        "name": "Zuverlässig",
        "description": "30 pünktliche Tage in einem Quartal",
        "icon": "📅",
        "category": "attendance",
        "rarity": "epic",
        "conditions": [
            {"metric": "punctualDays", "operator": "gte", "target": 30, "timeframe": "quarterly"},
        ],
        "rewards": [{"kind": "coins", "amount": 100}],
    },
    # Social
    {
        "id": "feedback_giver",
        "name": "Feedback-Geber",
        "description": "Gib 10 Mal Feedback",
        "icon": "💬",
        "category": "social",
        "rarity": "common",
        "conditions": [{"metric": "feedbackGiven", "operator": "gte", "target": 10}],
        "rewards": [{"kind": "skillXp", "amount": 30, "skill_id": "teamwork"}],
    },
    # Economy
    {
        "id": "coin_collector",
        "name": "Münzsammler",
        "description": "Verdiene 500 Coins in einem Quartal",
        "icon": "🪙",
        "category": "economy",
        "rarity": "rare",
        "conditions": [
            {"metric": "coinsEarned", "operator": "gte", "target": 500, "timeframe": "quarterly"},
        ],
        "rewards": [{"kind": "skillXp", "amount": 50, "skill_id": "hustle"}],
    },
    # Progression
    {
        "id": "level_5",
        "name": "Explorer",
        "description": "Erreiche Level 5",
        "icon": "🧭",
        "category": "progression",
        "rarity": "rare",
        "conditions": [{"metric": "level", "operator": "gte", "target": 5}],
        "rewards": [{"kind": "coins", "amount": 75}],
    },
    {
        "id": "xp_1000",
        "name": "Tausender",
        "description": "Sammle 1.000 XP",
        "icon": "💎",
        "category": "progression",
        "rarity": "epic",
        "is_hidden": True,
        "conditions": [{"metric": "totalXP", "operator": "gte", "target": 1000}],
        "rewards": [{"kind": "coins", "amount": 100}],
    },
]
