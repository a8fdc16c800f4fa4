# ABOUTME: Runtime configuration for the One Cup English reader service
# ABOUTME: Env-driven endpoints/paths plus fixed interaction thresholds for the reading view
from __future__ import annotations

import os


def _parse_csv_env(name: str) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return []
    return [x.strip() for x in raw.split(",") if x.strip()]


DB_PATH = os.getenv("DB_PATH", "data/onecup.db")
PREFS_PATH = os.getenv("PREFS_PATH", "data/preferences.json")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

DICTIONARY_BASE_URL = os.getenv("DICTIONARY_BASE_URL", "https://api.dictionaryapi.dev/api/v2/entries/en")

DEFINITION_LOCALE = os.getenv("DEFINITION_LOCALE", "ko")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8780"))

DEFAULT_FEATURED_ARTICLE_IDS = [
    "Alx2pN2Wrv9jbP2MCNKo",
    "7WHMBwU9m8LtBYI2wQVA",
    "hienPf1lJL8GMBKkjnKm",
    "H1hBMM5hB7MqdXkbvvxp",
    "xI3D8ijG6Fp7UHHCvu9B",
    "Xi1YVDM6xqHYNTfnhW6X",
]
FEATURED_ARTICLE_IDS = _parse_csv_env("FEATURED_ARTICLE_IDS") or DEFAULT_FEATURED_ARTICLE_IDS

DEFAULT_CORS_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
CORS_ORIGINS = _parse_csv_env("CORS_ORIGINS") or DEFAULT_CORS_ORIGINS

# Word selection heuristics (tuned against real taps; keep as-is)
MAX_WORD_LENGTH = 30

# Gestures
LONG_PRESS_SECS = 0.5
LONG_PRESS_MOVE_PX = 8

# Translation reliance nag
TRANSLATION_WARNING_THRESHOLD = 3
TRANSLATION_WARNING_AUTOCLOSE_SECS = 8.0

KEYWORD_WATCHDOG_SECS = 5.0

FRAME_INTERVAL = 1 / 60

READING_WPM = 150
QUICK_READ_MAX_BOLD = 5
