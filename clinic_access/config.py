"""
Centralised configuration constants and logging setup.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# ── Clinic reference data ────────────────────────────────────────────
DEPARTMENTS = (
    "Clinical", "Surgery", "Emergency", "Administration", "Front Office",
)

USER_STATUSES = {"active", "inactive"}

# Display-only colour for groups created without one.
DEFAULT_GROUP_COLOR = "#64748b"

# ── Seeding ──────────────────────────────────────────────────────────
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "1") == "1"
SEED_FIXTURE_PATH = os.getenv("SEED_FIXTURE_PATH")

# ── API server ───────────────────────────────────────────────────────
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
FLASK_ENV = os.getenv("FLASK_ENV", "production")

# ── Logging ──────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(levelname)s : %(asctime)s | %(name)s | %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Attach a single stream handler to the ``clinic_access`` logger tree."""
    logger = logging.getLogger("clinic_access")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
