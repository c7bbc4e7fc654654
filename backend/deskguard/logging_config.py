import logging

from deskguard.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "deskguard"


def setup_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)

    # Avoid duplicate handlers in dev reload
    if logger.handlers:
        return logger

    logger.setLevel(settings.log_level.upper())

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    return logger
