"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all mova ai settings: the Gemini API key, candidate model
  lists, retry timings, request limits, and the assistant's system instruction.
  Designed for single-user use: each person runs their own copy of this backend
  with their own .env file.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so the API key stays out of code).
  - Exposes GEMINI_API_KEY and the ordered model candidate lists per intent.
  - Defines the retry/backoff timings used by the request orchestrator.
  - Defines the total time budget per request, max message length and max image size.
  - Holds the system instruction and the greeting shown at the start of a session.

USAGE:
  Import what you need: `from config import GEMINI_API_KEY, CHAT_MODELS, MOVA_SYSTEM_PROMPT`
  All services import from here so behaviour is consistent.
"""

import os
import logging
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


def _env_models(name: str, default: tuple) -> tuple:
    """
    Read an ordered, comma-separated list of model ids from the environment.
    Blank entries are dropped; if nothing usable is set, the default list is returned.
    """
    raw = os.getenv(name, "")
    models = tuple(m.strip() for m in raw.split(",") if m.strip())
    if raw and not models:
        logger.warning("%s is set but contains no model ids; using defaults", name)
    return models or default


def _env_float(name: str, default: float) -> float:
    """Read a positive float from the environment; anything else falls back to the default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid value for %s (%r); using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive (got %r); using %s", name, raw, default)
        return default
    return value


# ============================================================================
# GEMINI API CONFIGURATION
# ============================================================================
# The key is validated once when the backend client is built (see
# app startup in mova.main). If it is missing every operation answers with an
# initialization error before any network call is attempted.
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()

# Ordered candidate lists. Chat and analysis fall through the list on rate
# limits; edit and generation stay on their single model and retry it.
CHAT_MODELS = _env_models(
    "MOVA_CHAT_MODELS",
    ("gemini-3.1-pro-preview", "gemini-3-flash-preview", "gemini-2.5-flash"),
)
ANALYZE_MODELS = _env_models(
    "MOVA_ANALYZE_MODELS",
    ("gemini-3-flash-preview", "gemini-2.5-flash"),
)
EDIT_MODEL = os.getenv("MOVA_EDIT_MODEL", "").strip() or "gemini-2.5-flash-image"
GENERATE_MODEL = os.getenv("MOVA_GENERATE_MODEL", "").strip() or "gemini-2.5-flash-image"

# ============================================================================
# RETRY / BACKOFF
# ============================================================================
# FALLBACK_DELAY_MS: flat wait before moving on to the next chat/analysis model.
# EDIT_*: same model, two attempts total, flat wait between them.
# GENERATE_*: same model, first attempt plus up to five retries; the wait grows
#   linearly by GENERATE_DELAY_STEP_MS (2s, 4s, 6s, 8s, 10s).
FALLBACK_DELAY_MS = 1000
EDIT_MAX_ATTEMPTS = 2
EDIT_DELAY_MS = 2000
GENERATE_MAX_RETRIES = 5
GENERATE_DELAY_STEP_MS = 2000

# Total wall-clock budget for one request, across every attempt and backoff.
REQUEST_DEADLINE_SECONDS = _env_float("MOVA_REQUEST_DEADLINE_SECONDS", 120.0)

# ============================================================================
# REQUEST LIMITS
# ============================================================================
MAX_MESSAGE_LENGTH = 32_000
# Decoded image size limit (bytes). Inline image data goes straight into the request body.
MAX_IMAGE_BYTES = 20 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
}
DEFAULT_IMAGE_TYPE = "image/png"

# Sessions kept in memory; the least recently used idle one is dropped beyond this.
MAX_SESSIONS = int(os.getenv("MOVA_MAX_SESSIONS", "100"))

DEFAULT_ANALYZE_PROMPT = "Analyze this image in detail."
DEFAULT_EDIT_PROMPT = "Enhance this image"
DEFAULT_EDIT_REPLY = "I've processed your image edit request."
DEFAULT_GENERATE_REPLY = "Here is the image you asked for."

# ============================================================================
# SERVER
# ============================================================================
HOST = os.getenv("MOVA_HOST", "0.0.0.0")
PORT = int(os.getenv("MOVA_PORT", "8000"))

# ============================================================================
# ASSISTANT PERSONALITY
# ============================================================================
ASSISTANT_NAME = (os.getenv("ASSISTANT_NAME", "").strip() or "mova ai")

MOVA_SYSTEM_PROMPT = (
    f"You are {ASSISTANT_NAME}, an advanced multimodal AI system. "
    "You are precise, analytical, and strategic. "
    "You break down complex tasks into structured steps. "
    "You are professional and confident."
)

GREETING = (
    f"Hello, I am **{ASSISTANT_NAME}**. I am ready to assist you with complex reasoning, "
    "document analysis, and advanced image editing. How can I help you today?"
)
