import os
import logging
from typing import Dict, Optional
from dotenv import load_dotenv

# Import custom errors
from hotoken_reservation.errors import ConfigurationError

"""
Configuration Management for the Hotoken Reservation Engine

This module handles all configuration loading and validation for the reservation engine.
It loads settings from environment variables with sensible defaults and validates them
so the sale is deployed with a consistent owner, supply cap and rate table.

Configuration Sources (in order of precedence):
1. Environment variables
2. Default values defined in this module
3. Configuration validation and type conversion

Security Considerations:
- OWNER_ADDRESS must be set explicitly in production
- STATE_FILE should live on durable storage writable only by the service
- CORS origins should be restricted in production

Environment Variables:
    OWNER_ADDRESS: Address of the single privileged principal
    HTKN_PER_ETH: Base issuance rate applied to every purchase
    TOTAL_SUPPLY: Fixed token supply cap (base units)
    MINIMUM_PURCHASE: Minimum raw amount for a participant's first contribution
    MAX_DISCOUNT_PERCENTAGE: Upper bound of the discount percentage
    DISCOUNT_STEP: Percentage represented by one discount index
    FUNDING_CURRENCY: Currency symbol of the default value-receipt path
    USD_RATES: Comma-separated SYMBOL:RATE pairs seeding the rate table
    STATE_FILE: JSON file the sale state is persisted to (empty = in-memory)
    ACTIONS_PORT: Port for the HTTP action API
    CORS_ALLOWED_ORIGINS: Comma-separated allowed CORS origins
"""

# Set up logger
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

DEV_OWNER_ADDRESS = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"
WEI_PER_ETH = 10**18


def _get_env_str(key: str, default: str, required: bool = False) -> str:
    """Get environment variable as string with validation."""
    value = os.getenv(key, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {key} is not set")
    return value


def _get_env_int(key: str, default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
    """Get environment variable as integer with validation."""
    try:
        value = int(os.getenv(key, str(default)))
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be a valid integer")
    if min_val is not None and value < min_val:
        raise ConfigurationError(f"Environment variable {key} must be >= {min_val}")
    if max_val is not None and value > max_val:
        raise ConfigurationError(f"Environment variable {key} must be <= {max_val}")
    return value


def _get_env_rates(key: str, default: str) -> Dict[str, int]:
    """Get environment variable as a SYMBOL:RATE mapping."""
    raw = os.getenv(key, default)
    rates: Dict[str, int] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            symbol, rate_str = part.split(":")
            rate = int(rate_str)
        except ValueError:
            raise ConfigurationError(f"Environment variable {key} must contain SYMBOL:RATE pairs, got '{part}'")
        if not symbol.strip() or rate <= 0:
            raise ConfigurationError(f"Environment variable {key} has an invalid entry '{part}'")
        rates[symbol.strip()] = rate
    return rates


def _load_owner_address() -> str:
    """Load the owner address, falling back to a development account."""
    owner = os.getenv("OWNER_ADDRESS", "").strip()
    if not owner:
        logger.warning(f"OWNER_ADDRESS is not set. Using the development owner {DEV_OWNER_ADDRESS}.")
        return DEV_OWNER_ADDRESS
    return owner


try:
    # --- Ownership ---
    OWNER_ADDRESS = _load_owner_address()

    # --- Sale Parameters ---
    HTKN_PER_ETH = _get_env_int("HTKN_PER_ETH", 10, min_val=1)
    TOTAL_SUPPLY = _get_env_int("TOTAL_SUPPLY", 10**27, min_val=0, max_val=2**256 - 1)
    DEFAULT_MINIMUM_PURCHASE = _get_env_int("MINIMUM_PURCHASE", 50000, min_val=0)
    MAX_DISCOUNT_PERCENTAGE = _get_env_int("MAX_DISCOUNT_PERCENTAGE", 30, min_val=0, max_val=100)
    DISCOUNT_STEP = _get_env_int("DISCOUNT_STEP", 10, min_val=1, max_val=100)
    FUNDING_CURRENCY = _get_env_str("FUNDING_CURRENCY", "ETH", required=True)
    DEFAULT_USD_RATES = _get_env_rates("USD_RATES", "ETH:400,BTC:11000,USD:1")

    if FUNDING_CURRENCY not in DEFAULT_USD_RATES:
        raise ConfigurationError(f"FUNDING_CURRENCY {FUNDING_CURRENCY} has no entry in USD_RATES")

    # --- Persistence ---
    STATE_FILE = _get_env_str("STATE_FILE", "")

    # --- Action API Configuration ---
    ACTIONS_PORT = _get_env_int("ACTIONS_PORT", 5000, min_val=1024, max_val=65535)
    ACTION_ICON_URL = _get_env_str("ACTION_ICON_URL", "https://via.placeholder.com/150/0000FF/FFFFFF?text=HTKN")
    CORS_ALLOWED_ORIGINS = _get_env_str("CORS_ALLOWED_ORIGINS", "*").split(",")

    logger.info("Configuration loaded successfully")

except ConfigurationError as e:
    logger.error(f"Configuration error: {e}")
    raise
