# FILE: bukedlist/settings.py
import os

# Single source for every tunable value
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
DEFAULT_THEME = "light"
DEFAULT_GRID_VIEW = "list"

EXPORT_VERSION = "1.0"
SUPPORTED_IMPORT_VERSIONS = ("1.0",)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")  # empty -> stderr only
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024)))
LOG_BACKUPS = int(os.getenv("LOG_BACKUPS", "3"))

