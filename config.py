"""Configuration for the Arena back office."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'arena.db'}",
)


# Bracket sizes accepted for new tournaments (comma-separated powers of two)
def _parse_sizes(value: str) -> set[int]:
    if not value:
        return set()
    result = set()
    for x in value.split(","):
        try:
            result.add(int(x.strip()))
        except ValueError:
            continue
    return result


ALLOWED_BRACKET_SIZES = _parse_sizes(os.getenv("ALLOWED_BRACKET_SIZES", "4,8")) or {4, 8}

# Share of the prize pool paid to the champion, in percent
DEFAULT_AWARD_PERCENTAGE = float(os.getenv("DEFAULT_AWARD_PERCENTAGE", "80"))

# Web auth (tokens are issued by the auth service; we only verify them)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-long-random-string")
JWT_ALGORITHM = "HS256"

# API server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
