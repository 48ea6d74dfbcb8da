from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db")
DEFAULT_OWNER_ID = os.getenv("DEFAULT_OWNER_ID", "local")

# External AI categorization (optional - keyword rules are used when absent)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
AI_API_URL = os.getenv("AI_API_URL", "https://api.openai.com/v1/chat/completions")
AI_MODEL = os.getenv("AI_MODEL", "gpt-3.5-turbo")
AI_BATCH_SIZE = int(os.getenv("AI_BATCH_SIZE", "10"))
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))

# Transaction dates are stored as naive calendar dates in this zone
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
