from __future__ import annotations

import os
from dataclasses import dataclass, field

from .buffer_store import BufferConfig


def _csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "3000"))
    env: str = os.getenv("ENV", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: list[str] = field(default_factory=lambda: _csv(os.getenv("CORS_ORIGINS", "*")))

    # Buffer limits
    queue_size: int = int(os.getenv("QUEUE_SIZE", "100"))
    max_message_size: int = int(os.getenv("MAX_MESSAGE_SIZE", "1024"))
    # Count of buffered messages per author; MAX_AUTHOR_SIZE is the legacy name
    max_author_count: int = int(os.getenv("MAX_AUTHOR_COUNT", os.getenv("MAX_AUTHOR_SIZE", "50")))
    max_age_minutes: int = int(os.getenv("MAX_AGE", "5"))

    # Shared secret checked against the x-api-key header
    api_key: str | None = os.getenv("API_KEY")

    # Client retry/backoff
    retry_max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    retry_initial_delay: float = float(os.getenv("RETRY_INITIAL_DELAY", "0.25"))
    retry_max_delay: float = float(os.getenv("RETRY_MAX_DELAY", "2"))

    def validate(self) -> None:
        """Raise RuntimeError on settings the service cannot start with."""
        if not self.api_key:
            raise RuntimeError("`API_KEY` not present")
        for name in ("queue_size", "max_message_size", "max_author_count", "max_age_minutes"):
            if getattr(self, name) < 0:
                raise RuntimeError(f"{name.upper()} must be >= 0")

    def buffer_config(self) -> BufferConfig:
        return BufferConfig(
            queue_size=self.queue_size,
            max_message_size=self.max_message_size,
            max_author_count=self.max_author_count,
            max_age=self.max_age_minutes * 60.0,
        )


settings = Settings()
