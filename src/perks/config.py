"""Application settings via pydantic-settings."""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GamificationConfig(BaseModel):
    """XP rates and event-type lookups used by the facade."""

    xp_training_completed: int = Field(default=50, ge=0)
    xp_punctual_checkin: int = Field(default=10, ge=0)
    xp_feedback_given: int = Field(default=15, ge=0)
    xp_daily_login: int = Field(default=5, ge=0)
    coins_to_xp_rate: float = Field(default=0.5, ge=0)
    welcome_xp: int = Field(default=25, ge=0)
    default_skills: dict[str, str] = Field(
        default_factory=lambda: {
            "training_completed": "knowledge",
            "punctual_checkin": "loyalty",
            "feedback_given": "loyalty",
            "daily_login": "loyalty",
            "coins_earned": "hustle",
        }
    )
    streak_event_kinds: list[str] = Field(default_factory=lambda: ["punctual_checkin"])

    def default_skill_for(self, event_type: str) -> str | None:
        """Skill that receives XP for an event type, or None for overall XP only."""
        return self.default_skills.get(event_type)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with PERKS_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PERKS_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8081"]

    # --- Calendar ---
    # Streak days and quarter buckets are computed in this timezone.
    timezone: str = "UTC"

    # --- Notifications ---
    notification_limit: int = 100

    # --- Gamification ---
    gamification: GamificationConfig = Field(default_factory=GamificationConfig)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
