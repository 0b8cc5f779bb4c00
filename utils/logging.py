import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv


def resolve_log_dir(dotenv_path: str | None = None) -> str:
    """Directory for log files, read from LOG_DIR after loading the .env file."""
    load_dotenv(dotenv_path)
    return os.getenv("LOG_DIR", "logs")


LOG_DIR = resolve_log_dir()

# Create logs directory if it doesn't exist
os.makedirs(LOG_DIR, exist_ok=True)

# Configure the logger
logger = logging.getLogger("expense_tracker")
logger.setLevel(logging.DEBUG)

# Create formatters
console_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
file_formatter = logging.Formatter(
    "%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)

# Only attach handlers once, the module may be imported under several names
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(console_formatter)

    # File handler with DEBUG level and rotation
    log_file = os.path.join(LOG_DIR, f"expense_tracker_{datetime.now().strftime('%Y%m%d')}.log")
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def set_console_level(level: str) -> None:
    """Change the level of the console handler (file logging stays at DEBUG).

    Args:
        level: Level name such as "DEBUG" or "INFO"

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    for handler in logger.handlers:
        if not isinstance(handler, RotatingFileHandler):
            handler.setLevel(numeric_level)
    logger.debug(f"Console log level set to {level.upper()}")


# Log startup message
logger.info("Logger initialized")
