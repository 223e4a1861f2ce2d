"""Static configuration for lootrelay.

All user-editable settings (API endpoint, tracking toggles, dedup windows,
logging) live in a single JSON file for quick edits without touching Python.
Mutable state (destinations, credentials) lives in the SQLite store instead.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("LOOTRELAY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Backend endpoint. LOOTRELAY_API wins so dev/prod can be switched per shell.
_api = _CONFIG.get("api", {})
API_ENDPOINT = os.getenv("LOOTRELAY_API") or _api.get("endpoint", "https://osrsloottracker.com/api")
API_TIMEOUT_SECONDS = float(_api.get("timeout_seconds", 10))

# Optional credential seed; the stored token takes precedence.
AUTH_TOKEN = os.getenv("AUTH_TOKEN")

# Tracking toggles per drop kind.
_tracking = _CONFIG.get("tracking", {})
TRACK_LOOT = bool(_tracking.get("track_loot", True))
TRACK_COLLECTION_LOG = bool(_tracking.get("track_collection_log", True))
TRACK_PETS = bool(_tracking.get("track_pets", True))
CAPTURE_SCREENSHOTS = bool(_tracking.get("capture_screenshots", True))

# Deduplication windows (milliseconds):
# - collection_log_window_ms: repeats of the same log entry are dropped
# - pet_correlation_window_ms: how recent a log entry may be to name a pet
# - eviction_ms: entries older than this are forgotten
_dedup = _CONFIG.get("dedup", {})
DEDUP_COLLECTION_LOG_WINDOW_MS = int(_dedup.get("collection_log_window_ms", 5000))
DEDUP_PET_CORRELATION_WINDOW_MS = int(_dedup.get("pet_correlation_window_ms", 3000))
DEDUP_EVICTION_MS = int(_dedup.get("eviction_ms", 30000))

RECENT_DROPS_MAX = int(_CONFIG.get("recent_drops", {}).get("max_entries", 10))

# Where to store the SQLite database.
DB_PATH = _project_path(_CONFIG.get("store", {}).get("path", "lootrelay.db"))

# The host drops frames here when a screenshot is requested.
SCREENSHOT_DIR = _project_path(_CONFIG.get("screenshots", {}).get("directory", "screenshots"))

ITEM_CATALOG_PATH = _project_path(_CONFIG.get("items", {}).get("catalog_path", "items.json"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
