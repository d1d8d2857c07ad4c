# farmstats/config.py
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve to the project root (one level up from farmstats/)
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FARMSTATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Stores
    yield_db_path: Path = BASE_DIR / "database" / "historical_yield.db"
    farmers_db_path: Path = BASE_DIR / "database" / "farmers.db"

    # Front-end
    static_dir: Path = BASE_DIR / "public"
    index_html: Path = BASE_DIR / "index.html"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
