import json
import logging
import os
from typing import Any

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./roommatch.db")
MATCH_CANDIDATE_LIMIT = int(os.getenv("MATCH_CANDIDATE_LIMIT", "20"))
MATCH_MAX_RETRIES = int(os.getenv("MATCH_MAX_RETRIES", "5"))
MATCH_RETRY_BACKOFF_SECONDS = float(os.getenv("MATCH_RETRY_BACKOFF_SECONDS", "0.01"))
DEFAULT_SCORE = float(os.getenv("DEFAULT_SCORE", "50.0"))
CANDIDATE_ROLE = os.getenv("CANDIDATE_ROLE", "student")

DEFAULT_MATCHING_CONFIG: dict[str, Any] = {
    "BUDGET_W": float(os.getenv("BUDGET_W", "0.30")),
    "LIFESTYLE_W": float(os.getenv("LIFESTYLE_W", "0.20")),
    "SLEEP_W": float(os.getenv("SLEEP_W", "0.20")),
    "INTERESTS_W": float(os.getenv("INTERESTS_W", "0.30")),
    "NEUTRAL_SUBSCORE": float(os.getenv("NEUTRAL_SUBSCORE", "50.0")),
}

if os.getenv("MATCHING_CONFIG_JSON"):
    try:
        DEFAULT_MATCHING_CONFIG.update(json.loads(os.getenv("MATCHING_CONFIG_JSON", "{}")))
    except json.JSONDecodeError as exc:
        logging.getLogger(__name__).warning("[CONFIG] ignoring malformed MATCHING_CONFIG_JSON: %s", exc)

DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
