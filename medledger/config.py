"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Ledger store ─────────────────────────────────────────────────────
DEFAULT_DB_URI = "sqlite:///medledger.db"
GENESIS_HASH = "0" * 64

# ── Identities ───────────────────────────────────────────────────────
# Account addresses as accepted by the relay (same rule as ethers.isAddress).
ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"

# ── Content store ────────────────────────────────────────────────────
CONTENT_STORE = os.getenv("CONTENT_STORE", "local").strip().lower()
PINATA_PIN_URL = "https://api.pinata.cloud/pinning/pinFileToIPFS"
PINATA_TIMEOUT_SECONDS = 60
LOCAL_STORE_DIR = os.getenv("LOCAL_STORE_DIR")  # None keeps pinned bytes in memory
MAX_UPLOAD_BYTES = 20 * 1024 * 1024

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24

# ── CLI ──────────────────────────────────────────────────────────────
MAX_PREVIEW_ROWS = 20


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def get_db_uri() -> str:
    """Return the SQLAlchemy URL for the ledger store."""
    return os.getenv("DB_URI") or DEFAULT_DB_URI
