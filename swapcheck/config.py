"""
Centralized configuration for swapcheck.
All settings come from environment variables so the same script can be
pointed at each backend of a swap without code changes.
"""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list:
    return [
        s.strip()
        for s in os.environ.get(name, default).split(",")
        if s.strip()
    ]


# ---------------------------------------------------------------------------
# MongoDB
# ---------------------------------------------------------------------------
MONGODB_URL = os.environ.get("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "swapcheck")
SERVER_SELECTION_TIMEOUT_MS = int(os.environ.get("SERVER_SELECTION_TIMEOUT_MS", "5000"))

# ---------------------------------------------------------------------------
# Backend detection
# ---------------------------------------------------------------------------
# "startup_log" reads getLog(startupWarnings); "build_info" reads buildInfo.
BACKEND_PROBE = os.environ.get("BACKEND_PROBE", "startup_log").strip().lower()
# When non-empty, a startup message containing this substring means "new".
NEW_BACKEND_SUBSTRING = os.environ.get("NEW_BACKEND_SUBSTRING", "")
# buildInfo versions at or above this are classified as the new backend.
NEW_BACKEND_MIN_VERSION = os.environ.get("NEW_BACKEND_MIN_VERSION", "7.0")
# Log name passed to getLog.
PROBE_LOG_NAME = os.environ.get("PROBE_LOG_NAME", "startupWarnings")

# ---------------------------------------------------------------------------
# Persisted layout
# ---------------------------------------------------------------------------
# Holds the phase ledger record, the enter-B marker and the probe warm-up doc.
STATE_COLLECTION = os.environ.get("STATE_COLLECTION", "y")
# Bookkeeping collections left out of the collection-count checkpoints.
IGNORED_COLLECTIONS = _env_list("IGNORED_COLLECTIONS", STATE_COLLECTION)

# ---------------------------------------------------------------------------
# Checkpoints (deployment specific, see DESIGN.md)
# ---------------------------------------------------------------------------
EXPECTED_COLLECTIONS_AFTER_A = int(os.environ.get("EXPECTED_COLLECTIONS_AFTER_A", "2"))
EXPECTED_COLLECTIONS_AFTER_B = int(os.environ.get("EXPECTED_COLLECTIONS_AFTER_B", "4"))

# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
# Print the marker snapshot after every run (handy in CI logs).
SHOW_MARKERS = _env_bool("SHOW_MARKERS", False)
