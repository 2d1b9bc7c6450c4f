import logging

from core.config import settings


def setup_logger():
    """Configure root logging once and return the "app" logger at LOG_LEVEL."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler()],
    )

    app_logger = logging.getLogger("app")
    app_logger.setLevel(settings.LOG_LEVEL.upper())

    return app_logger
