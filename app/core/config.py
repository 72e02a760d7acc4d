# app/core/config.py
"""Environment-driven settings for the CRM workboard service."""

import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ===== DATABASE =====
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./crm_workboards.db")

# ===== REQUEST LOGGING =====
APPLICATION_ID = os.getenv("APPLICATION_ID", "Unknown")

# ===== WORKBOARD LIMITS =====
# Page size and per-board column/filter caps bound the size of any generated query.
WORKBOARD_DEFAULT_PAGE_SIZE = _int_env("WORKBOARD_DEFAULT_PAGE_SIZE", 50)
WORKBOARD_MAX_PAGE_SIZE = _int_env("WORKBOARD_MAX_PAGE_SIZE", 100)
WORKBOARD_MAX_COLUMNS = _int_env("WORKBOARD_MAX_COLUMNS", 50)
WORKBOARD_MAX_FILTERS = _int_env("WORKBOARD_MAX_FILTERS", 20)
FILTER_MAX_STRING_LENGTH = 500
FILTER_MAX_ARRAY_LENGTH = 100
# Integer filter values must fit a signed 64-bit column.
FILTER_MIN_INT = -(2**63)
FILTER_MAX_INT = 2**63 - 1

# ===== FORMULA TUNING =====
SLA_BREACH_DAYS = _int_env("SLA_BREACH_DAYS", 14)
SLA_BREACH_STAGE = os.getenv("SLA_BREACH_STAGE", "proposal")
NO_ACTIVITY_SENTINEL_DAYS = _int_env("NO_ACTIVITY_SENTINEL_DAYS", 999)
