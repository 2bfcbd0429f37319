# backend/garagehub/core/config.py
import secrets
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "GarageHub API"

    # --- Security / JWT ---
    SECRET_KEY: str = secrets.token_urlsafe(32)  # set via ENV in production
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    CLIENT_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./garagehub.db"

    # --- CORS ---
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- Business defaults (overridable per tenant via system_config) ---
    DEFAULT_TAX_RATE: float = 15.0
    DEFAULT_INVOICE_DUE_DAYS: int = 30


settings = Settings()

# SQLite needs check_same_thread disabled for the threadpool FastAPI runs sync handlers in
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
