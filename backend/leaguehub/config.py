import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./leaguehub.db")
SQL_ECHO = _env_bool("SQL_ECHO")
SQLITE_BUSY_TIMEOUT = _env_int("SQLITE_BUSY_TIMEOUT", 5)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Whole-transaction attempts for a score submission before a conflict is surfaced
SCORE_SUBMIT_MAX_ATTEMPTS = max(1, _env_int("SCORE_SUBMIT_MAX_ATTEMPTS", 3))

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())
