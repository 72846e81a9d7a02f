from functools import lru_cache
from typing import Literal, Optional
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()


class EngineSettings(BaseSettings):
    # Flow model significance thresholds
    drain_significance: float = 0.01
    transfer_significance: float = 0.01

    # Reject malformed questionnaire rows instead of coercing them to 0.
    # Off by default: a weaker vector is preferred over a missing report.
    strict_answers: bool = False

    derivation_backend: Literal["sql", "redis", "memory"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./persona.db"
    redis_url: str = "redis://localhost:6379/0"
    derivation_ttl_seconds: Optional[int] = None

    profession_catalog_path: str = "assets/profession_catalog.yml"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix='PERSONA_')


@lru_cache()
def get_settings() -> EngineSettings:
    return EngineSettings()
