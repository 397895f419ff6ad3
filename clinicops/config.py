import os

from dotenv import load_dotenv

load_dotenv()


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except Exception:
        return int(default)


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "1" if default else "0").strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return bool(default)


class Settings:
    APP_NAME = os.getenv("APP_NAME", "clinicops").strip()
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinicops.db")
    DB_AUTO_CREATE_ALL = _get_bool("DB_AUTO_CREATE_ALL", False)

    ANALYTICS_MAX_WORKERS = _get_int("ANALYTICS_MAX_WORKERS", 8)
    DEFAULT_LOOKAHEAD_DAYS = _get_int("DEFAULT_LOOKAHEAD_DAYS", 30)
    DEFAULT_LOOKBACK_DAYS = _get_int("DEFAULT_LOOKBACK_DAYS", 30)
    DEFAULT_TREND_LOOKBACK_DAYS = _get_int("DEFAULT_TREND_LOOKBACK_DAYS", 90)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    SECURITY_HEADERS_ENABLED = _get_bool("SECURITY_HEADERS_ENABLED", True)


settings = Settings()
