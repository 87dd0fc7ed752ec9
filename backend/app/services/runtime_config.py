from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.app_config import AppConfig

logger = logging.getLogger(__name__)


CONFIG_DEFAULTS: dict[str, Callable[[], Any]] = {
    "daily_cap": lambda: settings.daily_cap,
    "starter_grant": lambda: settings.starter_grant,
    "image_cost": lambda: settings.image_cost,
    "video_cost": lambda: settings.video_cost,
    "video_enabled": lambda: settings.video_enabled,
    "referral_referrer_bonus": lambda: settings.referral_referrer_bonus,
    "referral_new_bonus": lambda: settings.referral_new_bonus,
}

BOOL_KEYS = {"video_enabled"}


def _raw_value(db: Session, key: str) -> Any:
    row = db.query(AppConfig).filter(AppConfig.key == key).first()
    return None if row is None else row.value


def cfg_int(db: Session, key: str, default: int | None = None) -> int:
    fallback = default if default is not None else int(CONFIG_DEFAULTS[key]())
    raw = _raw_value(db, key)
    if raw is None or isinstance(raw, bool):
        return fallback
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning("config.cfg_int.malformed key=%s value=%r", key, raw)
        return fallback


def cfg_bool(db: Session, key: str, default: bool | None = None) -> bool:
    fallback = default if default is not None else bool(CONFIG_DEFAULTS[key]())
    raw = _raw_value(db, key)
    if raw is None:
        return fallback
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    logger.warning("config.cfg_bool.malformed key=%s value=%r", key, raw)
    return fallback


def effective_config(db: Session) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_DEFAULTS:
        out[key] = cfg_bool(db, key) if key in BOOL_KEYS else cfg_int(db, key)
    return out


def set_config_value(db: Session, key: str, value: Any) -> AppConfig:
    if key not in CONFIG_DEFAULTS:
        raise KeyError(key)
    if key in BOOL_KEYS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
    else:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{key} must be a non-negative integer")

    row = db.query(AppConfig).filter(AppConfig.key == key).first()
    if row is None:
        row = AppConfig(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    db.commit()
    db.refresh(row)
    logger.info("config.set key=%s value=%r", key, value)
    return row
