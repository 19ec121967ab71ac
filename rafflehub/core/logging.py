import logging

from rafflehub.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("rafflehub")
    if not logger.handlers:
        logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logger.setLevel(settings.log_level)
    return logger
