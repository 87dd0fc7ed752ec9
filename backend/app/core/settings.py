import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./ledger.db") or "sqlite:///./ledger.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=(self.environment != "production"))
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()

        # Defaults for the app_config keys; a row in app_config wins over these.
        self.daily_cap = _getenv_int("DAILY_CAP", 30)
        self.starter_grant = _getenv_int("STARTER_GRANT", 30)
        self.image_cost = _getenv_int("IMAGE_COST", 2)
        self.video_cost = _getenv_int("VIDEO_COST", 5)
        self.video_enabled = _getenv_bool("VIDEO_ENABLED", default=False)
        self.referral_referrer_bonus = _getenv_int("REFERRAL_REFERRER_BONUS", 50)
        self.referral_new_bonus = _getenv_int("REFERRAL_NEW_BONUS", 25)

        self.reserve_max_attempts = max(1, _getenv_int("RESERVE_MAX_ATTEMPTS", 3))
        self.reserve_retry_backoff_ms = max(0, _getenv_int("RESERVE_RETRY_BACKOFF_MS", 50))
        self.reservation_timeout_seconds = max(1, _getenv_int("RESERVATION_TIMEOUT_SECONDS", 900))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:5173", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
