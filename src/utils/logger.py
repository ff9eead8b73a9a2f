"""Logging configuration for the scheduling engine."""
import logging
import logging.handlers
from pathlib import Path
from src.config.settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def configure_logging(name: str) -> logging.Logger:
    """
    Attach console (and optional rotating file) handlers to a logger.

    Child loggers (module-level ``logging.getLogger(__name__)``) propagate
    to it, so configuring a package name covers every module below it.

    Args:
        name: Logger name, e.g. 'scripts.schedule'

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(settings.LOG_LEVEL)

    # Configured already
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_dir / f'{name}.log',
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
