# examprep/config.py
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)


def _csv(value: str) -> List[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


def _optional_int(value: Optional[str]) -> Optional[int]:
    # empty or 0 means "no ceiling"
    if not value or not value.strip():
        return None
    n = int(value)
    return n if n > 0 else None


def _optional_float(value: Optional[str]) -> Optional[float]:
    if not value or not value.strip():
        return None
    n = float(value)
    return n if n > 0 else None


class Settings:
    def __init__(self):
        self.DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
        self.DB_PORT = int(os.getenv("DB_PORT", "5432"))
        self.DB_NAME = os.getenv("DB_NAME", "examprep")
        self.DB_USER = os.getenv("DB_USER", "examprep")
        self.DB_PASSWORD = os.getenv("DB_PASSWORD", "examprep_pwd")
        self.DATABASE_URL = os.getenv("DATABASE_URL", "")
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

        self.GENERATOR_BASE_URL = os.getenv("GENERATOR_BASE_URL", "http://127.0.0.1:54321/functions/v1")
        self.GENERATOR_API_KEY = os.getenv("GENERATOR_API_KEY", "")
        self.GENERATOR_TIMEOUT = float(os.getenv("GENERATOR_TIMEOUT", "60"))

        self.GENERATION_RETRY_DELAY = float(os.getenv("GENERATION_RETRY_DELAY", "2.0"))
        self.GENERATION_MAX_ATTEMPTS = _optional_int(os.getenv("GENERATION_MAX_ATTEMPTS"))
        self.MOCK_TEST_SECTIONS = _csv(os.getenv("MOCK_TEST_SECTIONS", "Physics,Chemistry,Math,GK"))
        # seconds an untouched quiz session is kept; empty or 0 keeps them forever
        self.SESSION_IDLE_TTL = _optional_float(os.getenv("SESSION_IDLE_TTL", "1800"))

        self.CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
