"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GEMINI_API_KEY          - Gemini API key (API_KEY is accepted as an alias)
    VIBEFIX_MODEL           - Default model preference (default: gemini-2.5-flash)
    VIBEFIX_PREMIUM_MODEL   - Model eligible for quota fallback (default: gemini-2.5-pro)
    VIBEFIX_FALLBACK_MODEL  - Model substituted on premium quota exhaustion
    VIBEFIX_MAX_ATTEMPTS    - Attempts per model before giving up (default: 3)
    VIBEFIX_BASE_DELAY      - First backoff delay in seconds (default: 1.0)
    VIBEFIX_MAX_JITTER      - Upper bound of random jitter in seconds (default: 0.5)
    VIBEFIX_TIMEOUT         - HTTP timeout per attempt in seconds (default: 120)
    VIBEFIX_TEMPERATURE     - Sampling temperature (default: 0.2)
    GEMINI_BASE_URL         - Generative Language API root

Injection:
    The module-level values are read once at import. The analyzer never reads
    them directly: it receives a Settings instance, built with
    Settings.from_env() in production and constructed by hand in tests.
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from vibefix.core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_FALLBACK_MODEL,
    DEFAULT_MODEL,
    DEFAULT_PREMIUM_MODEL,
    MAX_ATTEMPTS,
)
from vibefix.core.errors import ConfigurationError

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
VIBEFIX_MODEL = os.getenv("VIBEFIX_MODEL", DEFAULT_MODEL)
VIBEFIX_PREMIUM_MODEL = os.getenv("VIBEFIX_PREMIUM_MODEL", DEFAULT_PREMIUM_MODEL)
VIBEFIX_FALLBACK_MODEL = os.getenv("VIBEFIX_FALLBACK_MODEL", DEFAULT_FALLBACK_MODEL)
VIBEFIX_MAX_ATTEMPTS = int(os.getenv("VIBEFIX_MAX_ATTEMPTS", MAX_ATTEMPTS))
VIBEFIX_BASE_DELAY = float(os.getenv("VIBEFIX_BASE_DELAY", 1.0))
VIBEFIX_MAX_JITTER = float(os.getenv("VIBEFIX_MAX_JITTER", 0.5))
VIBEFIX_TIMEOUT = float(os.getenv("VIBEFIX_TIMEOUT", 120.0))
VIBEFIX_TEMPERATURE = float(os.getenv("VIBEFIX_TEMPERATURE", 0.2))
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration handed to the analyzer and HTTP client."""
    api_key: str = ""
    model: str = DEFAULT_MODEL
    premium_model: str = DEFAULT_PREMIUM_MODEL
    fallback_model: str = DEFAULT_FALLBACK_MODEL
    max_attempts: int = MAX_ATTEMPTS
    base_delay: float = 1.0
    max_jitter: float = 0.5
    timeout_seconds: float = 120.0
    temperature: float = 0.2
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the values loaded at import time."""
        return cls(
            api_key=(GEMINI_API_KEY or "").strip(),
            model=VIBEFIX_MODEL,
            premium_model=VIBEFIX_PREMIUM_MODEL,
            fallback_model=VIBEFIX_FALLBACK_MODEL,
            max_attempts=VIBEFIX_MAX_ATTEMPTS,
            base_delay=VIBEFIX_BASE_DELAY,
            max_jitter=VIBEFIX_MAX_JITTER,
            timeout_seconds=VIBEFIX_TIMEOUT,
            temperature=VIBEFIX_TEMPERATURE,
            base_url=GEMINI_BASE_URL,
        )

    def require_api_key(self) -> str:
        """
        Return the API key, or fail before any request is attempted.

        Raises
        ------
        ConfigurationError
            If no key is configured.
        """
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "API Key is missing. Please check your environment configuration "
                "(set GEMINI_API_KEY)."
            )
        return self.api_key
