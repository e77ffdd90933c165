"""
Environment configuration.

Values come from the process environment, optionally seeded from a local
.env file. Read once at import time.
"""

import os

from dotenv import load_dotenv

from .logging_config import get_logger

load_dotenv()
log = get_logger(__name__)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


TEST_MODE = _flag("TEST_MODE")

DATABASE_PATH = os.getenv(
    "DATABASE_PATH",
    "./test_tennis_rank.sqlite" if TEST_MODE else "./tennis_rank.sqlite",
)

# Rankings cache lifetime in seconds - validate it's positive
DEFAULT_CACHE_TTL = 300.0
try:
    RANKINGS_CACHE_TTL = float(os.getenv("RANKINGS_CACHE_TTL", str(DEFAULT_CACHE_TTL)))
    if RANKINGS_CACHE_TTL <= 0:
        log.warning("RANKINGS_CACHE_TTL must be positive, using default %s", DEFAULT_CACHE_TTL)
        RANKINGS_CACHE_TTL = DEFAULT_CACHE_TTL
except ValueError:
    log.warning("Invalid RANKINGS_CACHE_TTL value, using default %s", DEFAULT_CACHE_TTL)
    RANKINGS_CACHE_TTL = DEFAULT_CACHE_TTL

# Upper bound for /api/rankings/top/{count}
TOP_PLAYERS_MAX = int(os.getenv("TOP_PLAYERS_MAX", "100"))

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
