"""
Configuration Module
=====================
Loads environment variables from .env file for:
- SCAMSHIELD_API_BASE: Origin of the ScamShield API (same-origin in the browser)
- SCAMSHIELD_TIMEOUT: Per-request HTTP timeout in seconds
- SCAMSHIELD_CSRF_COOKIE: Name of the cookie carrying the CSRF token
- SCAMSHIELD_REVEAL_MIN_MS / SCAMSHIELD_REVEAL_MAX_MS: Bounds of the
  randomized per-word delay used when revealing assistant replies
- SCAMSHIELD_LOG_LEVEL: Root log level for the console runner

Raises RuntimeError at import if the reveal bounds are unusable,
preventing sessions from starting with a broken typing cadence.
"""

import os
from dotenv import load_dotenv

load_dotenv()

API_BASE: str = os.getenv("SCAMSHIELD_API_BASE", "http://localhost:8787").rstrip("/")
REQUEST_TIMEOUT: float = float(os.getenv("SCAMSHIELD_TIMEOUT", "20"))
CSRF_COOKIE_NAME: str = os.getenv("SCAMSHIELD_CSRF_COOKIE", "scamshield_csrf")

REVEAL_MIN_MS: int = int(os.getenv("SCAMSHIELD_REVEAL_MIN_MS", "8"))
REVEAL_MAX_MS: int = int(os.getenv("SCAMSHIELD_REVEAL_MAX_MS", "25"))

LOG_LEVEL: str = os.getenv("SCAMSHIELD_LOG_LEVEL", "INFO").upper()

if REVEAL_MIN_MS < 0 or REVEAL_MAX_MS < 0:
    raise RuntimeError("SCAMSHIELD_REVEAL_MIN_MS/MAX_MS must not be negative (check .env file)")

if REVEAL_MIN_MS > REVEAL_MAX_MS:
    raise RuntimeError("SCAMSHIELD_REVEAL_MIN_MS is above SCAMSHIELD_REVEAL_MAX_MS (check .env file)")
