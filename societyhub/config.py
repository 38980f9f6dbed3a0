# societyhub/config.py
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_JWT_SECRET = "dev-secret-please-change"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Database ---
    database_url: str = "sqlite:///societyhub/society_dev.db"

    # --- Security / JWT ---
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    refresh_token_expire_minutes: int = 60 * 24 * 30  # 30 days
    min_password_length: int = 6

    # --- Rate limiting (login / signup) ---
    auth_rate_limit: int = 10
    auth_rate_window_seconds: int = 60

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:5174"]

    # --- Logging ---
    log_level: str = "INFO"
    log_json: bool = False

    # --- Payments ---
    payment_history_limit: int = 50

    @property
    def cors_allow_origins(self) -> List[str]:
        return [origin.rstrip("/") for origin in self.cors_origins]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

# Ensure path directory exists (for SQLite)
if settings.database_url.startswith("sqlite:///"):
    db_path = Path(settings.database_url.replace("sqlite:///", ""))
    db_path.parent.mkdir(parents=True, exist_ok=True)

# --- SQLAlchemy setup ---
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
