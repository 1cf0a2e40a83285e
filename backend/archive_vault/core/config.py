import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (only in development)
# In containers, environment variables are set directly
if os.getenv("ENVIRONMENT") != "production":
    load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Library root - holds db.sqlite, store/ and cache/. Can be changed at runtime via PUT /library
LIBRARY_ROOT_STR = os.getenv("LIBRARY_ROOT", str(BASE_DIR / "data" / "library"))
LIBRARY_ROOT = Path(LIBRARY_ROOT_STR)

# Archive dates are local calendar days in this fixed UTC offset
LIBRARY_TZ_OFFSET_HOURS = int(os.getenv("LIBRARY_TZ_OFFSET_HOURS", "8"))

# Search limits (clamped server-side regardless of request values)
SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "50"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "200"))
SEARCH_MAX_OFFSET = int(os.getenv("SEARCH_MAX_OFFSET", "20000"))
SEARCH_FETCH_MULTIPLIER = int(os.getenv("SEARCH_FETCH_MULTIPLIER", "4"))
SEARCH_FETCH_FLOOR = int(os.getenv("SEARCH_FETCH_FLOOR", "200"))
SEARCH_FETCH_CAP = int(os.getenv("SEARCH_FETCH_CAP", "5000"))
HIGHLIGHT_MAX_RANGES = int(os.getenv("HIGHLIGHT_MAX_RANGES", "20"))

# Archive listing
LIST_DEFAULT_LIMIT = int(os.getenv("LIST_DEFAULT_LIMIT", "200"))
LIST_MAX_LIMIT = int(os.getenv("LIST_MAX_LIMIT", "1000"))

# Ingestion work bounds
MAX_ZIP_ENTRIES = int(os.getenv("MAX_ZIP_ENTRIES", "20000"))
MAX_NESTED_ZIP_BYTES = int(os.getenv("MAX_NESTED_ZIP_BYTES", str(512 * 1024 * 1024)))
FOLDER_SCAN_LIMIT = int(os.getenv("FOLDER_SCAN_LIMIT", "2000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")
ENABLE_FILE_LOGGING = os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true"

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
