# recordhub/settings.py
import os
import logging
from typing import Dict

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


# --- Firebase / Firestore ---
FIREBASE_SERVICE_ACCOUNT_PATH = os.getenv(
    "FIREBASE_SERVICE_ACCOUNT_PATH", os.path.join(os.getcwd(), "serviceAccountKey.json")
)
FIREBASE_SERVICE_ACCOUNT_JSON = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Web API key for the Identity Toolkit REST endpoints (email/password auth)
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY", "")
IDENTITY_TOOLKIT_URL = os.getenv("IDENTITY_TOOLKIT_URL", "https://identitytoolkit.googleapis.com/v1")
AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", "10"))

AUTH_REQUIRED = _env_bool("AUTH_REQUIRED", True)
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

# 1 means a single attempt: failures surface to the caller without retry
STORE_RETRY_ATTEMPTS = max(1, _env_int("STORE_RETRY_ATTEMPTS", 1))

# --- Collections ---
EMPLOYEES = "employees"
PROJECTS = "projects"
NORMAL_ORDERS = "normalOrders"
DISSERTATIONS = "dissertations"
INVOICES = "invoices"

# --- Pricing ---
WORDS_PER_PAGE = 275
PRICING_DEFAULTS: Dict[str, Dict[str, float]] = {
    "Normal": {"costPerPage": 0.0, "codePrice": 500.0},
    "Dissertation": {"costPerPage": 425.0, "codePrice": 10000.0},
}
CURRENCY_PREFIX = os.getenv("CURRENCY_PREFIX", "Ksh.")

# --- Classifier / reporting ---
DUE_SOON_DAYS = 3
HIGH_COMPLETION_RATE = 0.75
ACTIVITY_FEED_SIZE = 5
HEARTBEAT_INTERVAL_SECONDS = 5
TREND_MONTHS = 6

# --- Listing ---
DEFAULT_PAGE_SIZE = max(1, _env_int("DEFAULT_PAGE_SIZE", 5))
MAX_PAGE_SIZE = 100

# --- Storage backend ---
# "firestore" (default) or "local" (JSON file, for development)
STORE_BACKEND = (os.getenv("STORE_BACKEND") or "firestore").strip().lower()
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", os.path.join(os.getcwd(), "records.json"))
