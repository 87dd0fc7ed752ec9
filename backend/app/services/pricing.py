from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.errors import InvalidActionError
from app.services.runtime_config import cfg_bool, cfg_int


IMAGE_ACTIONS: frozenset[str] = frozenset(
    {
        "image.gen",
        "mask.gen",
        "emotionmask",
        "preset",
        "presets",
        "custom",
        "ghiblireact",
        "neotokyoglitch",
    }
)
VIDEO_ACTIONS: frozenset[str] = frozenset({"video.gen"})
ALLOWED_ACTIONS: frozenset[str] = IMAGE_ACTIONS | VIDEO_ACTIONS


def normalize_action(action: str | None) -> str:
    return (action or "").strip().lower()


def validate_action(db: Session, action: str) -> str:
    key = normalize_action(action)
    if key not in ALLOWED_ACTIONS:
        raise InvalidActionError(
            f"Invalid action: {action}. Allowed: {', '.join(sorted(ALLOWED_ACTIONS))}",
            action=action,
        )
    if key in VIDEO_ACTIONS and not cfg_bool(db, "video_enabled"):
        raise InvalidActionError("Video generation is disabled", action=action)
    return key


def cost_for_action(db: Session, action: str) -> int:
    key = validate_action(db, action)
    if key in VIDEO_ACTIONS:
        return cfg_int(db, "video_cost")
    return cfg_int(db, "image_cost")
