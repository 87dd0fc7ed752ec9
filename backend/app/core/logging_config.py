import logging

from app.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    root.setLevel(resolved)
    # SQL echo is controlled separately; keep the engine quiet at INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
