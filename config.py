import os

from dotenv import load_dotenv

from constants import DEFAULT_CURRENCY_SYMBOL
from utils.logging import logger, set_console_level


logger.info("Loading environment variables")
load_dotenv()

DB_PATH = os.getenv("DB_PATH", "expenses.db")
if not DB_PATH.strip():
    logger.error("DB_PATH is set but empty")
    raise ValueError("DB_PATH environment variable must not be empty")

CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", DEFAULT_CURRENCY_SYMBOL)

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
try:
    set_console_level(LOG_LEVEL)
except ValueError:
    logger.error(f"Invalid LOG_LEVEL value: {LOG_LEVEL}")
    raise

logger.info("Configuration loaded successfully")
