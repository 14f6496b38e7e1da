import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./flights.db")
DATABASE_ECHO = _env_flag("DATABASE_ECHO", "0")
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

# Override in any shared environment; tokens signed with this key are trusted.
SESSION_SECRET = os.getenv("SESSION_SECRET", "a-very-secret-key-that-should-be-in-an-env-file")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", "86400"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SEED_DATA = _env_flag("SEED_DATA", "1")
