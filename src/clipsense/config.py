import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPSENSE_DATA_DIR", Path.home() / ".local" / "share" / "clipsense"))
DB_PATH = DATA_DIR / "clipsense.db"
LOG_PATH = DATA_DIR / "clipsense.log"

APP_NAME = "ClipSense"
DATABASE_VERSION = 1


def _parse_seconds(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(0.05, min(10.0, value))


POLL_INTERVAL = _parse_seconds("CLIPSENSE_POLL_INTERVAL", 0.5)  # seconds between clipboard checks
ANALYSIS_DEBOUNCE = _parse_seconds("CLIPSENSE_ANALYSIS_DEBOUNCE", 0.5)  # quiet period before analysis
# Never shorter than one poll, otherwise a late poll can pick up our own write.
SUPPRESS_DELAY = max(POLL_INTERVAL, 0.1)

MAX_CONTENT_LENGTH = 10_000  # characters kept per clip
TRUNCATION_MARKER = "..."
MIN_CONFIDENCE = 0.5  # detected types must score strictly above this
MAX_SUGGESTIONS = 6
HISTORY_LIMIT = 100
SEARCH_PAGE_SIZE = 100
PREVIEW_LENGTH = 60  # characters shown in menu item


def _parse_menu_display_count() -> int:
    raw = os.environ.get("CLIPSENSE_MENU_DISPLAY_COUNT")
    if raw is None:
        return 10
    try:
        value = int(raw)
    except ValueError:
        return 10
    return max(5, min(50, value))


MENU_DISPLAY_COUNT = _parse_menu_display_count()
EXPIRY_CHECK_INTERVAL = 60  # seconds between sensitive-clip expiry sweeps

DEFAULT_SETTINGS = {
    "theme": "system",
    "maxHistoryItems": 1000,
    "autoStart": True,
    "showNotifications": True,
    "globalShortcut": "CommandOrControl+Shift+V",
    "encryptSensitiveData": True,
    "autoDeleteSensitive": True,
    "sensitiveDataTTL": 300_000,  # milliseconds
    "language": "en",
}
