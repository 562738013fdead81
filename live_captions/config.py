"""Configuration constants and .env loading for the caption service.

WHY: Timeouts, display durations and server settings need to be easy to
find and to override per deployment without touching code.

HOW: python-dotenv loads the .env file on import. Each value is a
module-level constant read from the environment with a sensible default.

RULES:
- All defaults can be overridden via environment variables.
- Engine presets (device profiles, width tables) live in
  display_captions.profiles, not here.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the service is started from)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError("{} must be an integer, got {!r}".format(name, raw))


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError("{} must be a number, got {!r}".format(name, raw))


# ---------------------------------------------------------------------------
# Display behaviour
# ---------------------------------------------------------------------------

INACTIVITY_TIMEOUT_S = _env_float("CAPTIONS_INACTIVITY_TIMEOUT_S", 40.0)
"""Seconds of silence after which the glasses display and history are cleared."""

FINAL_DISPLAY_DURATION_MS = _env_int("CAPTIONS_FINAL_DISPLAY_MS", 20000)
"""How long finalized captions stay on the device. Partials have no timeout."""

CLEAR_DISPLAY_DURATION_MS = 1000

HISTORY_CAPACITY = _env_int("CAPTIONS_HISTORY_CAPACITY", 30)
"""Finalized utterances kept per session for display and replay."""

MAX_TRANSCRIPTS = _env_int("CAPTIONS_MAX_TRANSCRIPTS", 100)
"""Dashboard transcript entries kept per session."""

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

HOST = os.getenv("CAPTIONS_HOST", "0.0.0.0")
PORT = _env_int("CAPTIONS_PORT", 8000)
LOG_LEVEL = os.getenv("CAPTIONS_LOG_LEVEL", "INFO").upper()
