"""Default benefit catalog and coin milestones."""

from __future__ import annotations

from typing import Any

BENEFIT_SEED_DATA: list[dict[str, Any]] = [
    {
        "benefit_id": "extra_day_off",
        "title": "Extra Urlaubstag",
        "description": "Ein zusätzlicher freier Tag nach Wahl",
        "coin_cost": 500,
        "category": "TIME",
        "icon": "🏖️",
        "stock_limit": None,
    },
    {
        "benefit_id": "office_massage",
        "title": "Massage im Büro",
        "description": "30-minütige Entspannungsmassage am Arbeitsplatz",
        "coin_cost": 250,
        "category": "WELLNESS",
        "icon": "💆",
        "stock_limit": 20,
    },
    {
        "benefit_id": "lunch_voucher",
        "title": "Mittagessen Gutschein",
        "description": "25€ Gutschein für lokale Restaurants",
        "coin_cost": 150,
        "category": "FOOD",
        "icon": "🍽️",
        "stock_limit": None,
    },
    {
        "benefit_id": "home_office_day",
        "title": "Home Office Tag",
        "description": "Ein zusätzlicher Home Office Tag pro Monat",
        "coin_cost": 200,
        "category": "OFFICE",
        "icon": "🏠",
        "stock_limit": None,
    },
    {
        "benefit_id": "course_voucher",
        "title": "Kurs-Gutschein",
        "description": "Online-Kurs deiner Wahl (bis 100€)",
        "coin_cost": 400,
        "category": "LEARNING",
        "icon": "📚",
        "stock_limit": 10,
    },
    {
        "benefit_id": "ergonomic_gear",
        "title": "Ergonomisches Zubehör",
        "description": "Mauspad, Handgelenkstütze oder ähnliches",
        "coin_cost": 100,
        "category": "OFFICE",
        "icon": "🖱️",
        "stock_limit": None,
    },
]

COIN_MILESTONE_SEED_DATA: list[dict[str, Any]] = [
    {
        "id": "bronze_saver",
        "title": "Bronze-Sparer",
        "description": "Spare 100 Coins an",
        "required_coins": 100,
        "reward": "Bronze-Rahmen für dein Profil",
    },
    {
        "id": "silver_saver",
        "title": "Silber-Sparer",
        "description": "Spare 500 Coins an",
        "required_coins": 500,
        "reward": "Team-Frühstück",
    },
    {
        "id": "gold_saver",
        "title": "Gold-Sparer",
        "description": "Spare 1.000 Coins an",
        "required_coins": 1000,
        "reward": "Überraschungspaket",
    },
]
