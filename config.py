"""
Configuration module for the doctor slot booking engine.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    storage_backend: str = "memory"  # memory, supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Redis (enables the cross-process slot guard)
    redis_url: Optional[str] = (
        None  # Redis connection URL (e.g., redis://localhost:6379/0)
    )

    # Slot policy
    default_max_bookings_per_day: int = 30
    default_minutes_per_patient: int = 10

    # Guard tuning
    guard_acquire_timeout_seconds: Optional[float] = 10.0  # None waits forever
    guard_lock_ttl_seconds: float = 30.0
    commit_conflict_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def uses_supabase(self) -> bool:
        return self.storage_backend.lower() == "supabase"

    def validate_all_required(self) -> None:
        """
        Validate that all settings required by the selected backend are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = []
        if self.uses_supabase:
            required_fields += ["supabase_url", "supabase_key"]
        elif self.storage_backend.lower() != "memory":
            raise ValueError(
                f"Unknown storage backend: {self.storage_backend!r}. "
                f"Expected 'memory' or 'supabase'."
            )

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Placeholder values copied from .env.example
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if self.default_max_bookings_per_day < 1:
            missing.append("default_max_bookings_per_day")
        if self.default_minutes_per_patient < 1:
            missing.append("default_minutes_per_patient")

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
