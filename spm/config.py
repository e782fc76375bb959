"""Global configuration — loaded from environment variables and `.env`."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class SpmSettings(BaseSettings):
    # DATABASE_URL is honoured unprefixed so existing .env files keep working
    database_url: str = Field(
        default="",
        validation_alias=AliasChoices("SPM_DATABASE_URL", "DATABASE_URL"),
    )
    migrations_dir: Path = Path("./migrations")
    log_level: str = "WARNING"
    connect_timeout: float = 10.0  # seconds

    model_config = {
        "env_prefix": "SPM_",
        "env_file": ".env",
        "extra": "ignore",
    }


settings = SpmSettings()
