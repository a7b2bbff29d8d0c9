import logging
import os
from pathlib import Path

from dotenv import load_dotenv

"""
Configuration settings for the Pokedex aggregation core.

This module loads environment variables, defines constants for retrieval,
filtering and roster persistence, and validates the configuration so that
misconfiguration is caught at startup rather than mid-request.
"""

load_dotenv()

logger = logging.getLogger("pokedex.config")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"❌ {name} must be an integer, got {raw!r}.\n"
            f"Fix or remove it from your .env file."
        )


ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

# Data Storage
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
DATA_DIR.mkdir(exist_ok=True)

# Database Configuration
# Format: scheme://path_or_host
# Defaults to a local SQLite file if not specified in environment
DB_CONNECTION_STRING = os.getenv(
    "DB_CONNECTION_STRING", f"sqlite:///{DATA_DIR / 'pokedex.db'}"
)

# API Configuration
POKEAPI_URL = os.getenv("POKEAPI_URL", "https://pokeapi.co/api/v2").rstrip("/")
USER_AGENT = "Pokedex-Aggregator/1.0"

# API Rate Limiting (size of the fan-out worker pool)
MAX_CONCURRENT_API_REQUESTS = _int_env("MAX_CONCURRENT_API_REQUESTS", 10)
API_REQUEST_TIMEOUT = _int_env("API_REQUEST_TIMEOUT", 30)  # Timeout in seconds
API_STARTUP_VALIDATION_TIMEOUT = 10  # Seconds

# Circuit Breaker Configuration
BREAKER_FAILURE_THRESHOLD = 5
BREAKER_RECOVERY_TIMEOUT = 60.0  # Seconds before a half-open trial request
BREAKER_SUCCESS_THRESHOLD = 2

# Listing Configuration
PAGE_SIZE = 20
TYPE_FILTER_LIMIT = 50  # Max entities resolved for a type-filtered listing
MAX_GENERATION = 8

# Roster Configuration
ROSTER_SIZE = 6
ROSTER_STORE_KEY = "pokemonTeams"
ROSTER_STORE_VERSION = 1
DEFAULT_ROSTER_NAME = "My Pokémon Team"

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "pokedex.log")


def validate_settings():
    """
    Validate all configuration settings to catch errors at startup.

    Raises:
        ValueError: If any configuration value is invalid (e.g., a zero-sized
            worker pool or a non-positive timeout).
    """
    if not POKEAPI_URL.startswith(("http://", "https://")):
        raise ValueError("POKEAPI_URL must be an http(s) URL")

    # Validate API settings
    if MAX_CONCURRENT_API_REQUESTS < 1:
        raise ValueError("MAX_CONCURRENT_API_REQUESTS must be at least 1")

    if API_REQUEST_TIMEOUT <= 0:
        raise ValueError("API_REQUEST_TIMEOUT must be positive")

    # Validate breaker settings
    if BREAKER_FAILURE_THRESHOLD < 1:
        raise ValueError("BREAKER_FAILURE_THRESHOLD must be at least 1")

    if BREAKER_RECOVERY_TIMEOUT <= 0:
        raise ValueError("BREAKER_RECOVERY_TIMEOUT must be positive")

    # Validate listing settings
    if PAGE_SIZE < 1:
        raise ValueError("PAGE_SIZE must be at least 1")

    if TYPE_FILTER_LIMIT < 1:
        raise ValueError("TYPE_FILTER_LIMIT must be at least 1")

    if MAX_GENERATION < 1:
        raise ValueError("MAX_GENERATION must be at least 1")

    if ROSTER_SIZE < 1:
        raise ValueError("ROSTER_SIZE must be at least 1")

    logger.info("✅ Configuration validation completed successfully")
