import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "modshield"


def setup_logger(log_file: Optional[str] = "modshield.log", log_level: str = "INFO") -> logging.Logger:
    """
    Configure the modshield logger

    Args:
        log_file: log file path, or None to log to the console only
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # already configured
    if logger.handlers:
        return logger

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        # rotate at 10MB, keep 5 files
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(min(logging.INFO, logger.level))
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    logger.addHandler(console_handler)

    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    return logger
