from __future__ import annotations
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

COUNTDOWN_SECONDS = int(os.getenv("FORMCOACH_COUNTDOWN_SECONDS", "3"))
TICK_SECONDS = float(os.getenv("FORMCOACH_TICK_SECONDS", "1.0"))
HOST = os.getenv("FORMCOACH_HOST", "127.0.0.1")
PORT = int(os.getenv("FORMCOACH_PORT", "8000"))
LOG_LEVEL = os.getenv("FORMCOACH_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
