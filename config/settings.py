from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()

DEVELOPMENT_ENVS = {"dev", "development", "local"}


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "production")
        self.groq_api_key: Optional[str] = os.getenv("GROQ_API_KEY")
        self.tavily_api_key: Optional[str] = os.getenv("TAVILY_API_KEY")
        self.groq_model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.1"))
        self.max_attempts: int = int(os.getenv("MAX_ATTEMPTS", "10"))
        self.retry_delay: float = float(os.getenv("RETRY_DELAY_SECONDS", "1.0"))
        self.conversation_ttl: float = float(
            os.getenv("CONVERSATION_TTL_SECONDS", str(60 * 60 * 24))
        )
        self.sweep_interval: float = float(os.getenv("CONVERSATION_SWEEP_SECONDS", "600"))
        self.search_max_results: int = int(os.getenv("SEARCH_MAX_RESULTS", "5"))
        self.search_timeout: float = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "10"))
        self.port: int = int(os.getenv("PORT", "3001"))

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in DEVELOPMENT_ENVS

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.groq_api_key:
            missing.append("GROQ_API_KEY")
        if not self.tavily_api_key:
            missing.append("TAVILY_API_KEY")
        return missing

    def require_credentials(self) -> None:
        missing = self.missing_credentials()
        if missing:
            raise RuntimeError(
                f"Missing {', '.join(missing)} environment variable(s). "
                "Please configure them in environment or .env"
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
