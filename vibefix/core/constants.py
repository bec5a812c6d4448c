"""
Constants
Centralised storage for model identifiers, retry bounds, and chat roles.
"""
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_PREMIUM_MODEL = "gemini-2.5-pro"
DEFAULT_FALLBACK_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_MIME_TYPE = "video/mp4"
MAX_ATTEMPTS = 3

ROLE_USER = "user"
ROLE_MODEL = "model"

INITIAL_VIDEO_PROMPT = "Analyze this bug."
INITIAL_CODE_PROMPT = "Review this code."
REFINE_ERROR_PREFIX = "Failed to refine fix: "
