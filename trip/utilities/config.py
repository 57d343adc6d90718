"""Configuration management for the Trip Planner."""
import json
import logging
import os
from typing import Final, Optional
from pathlib import Path

from dotenv import load_dotenv

from trip.utilities.constants import DEFAULT_APP_ID, PLANS_COLLECTION_TEMPLATE

# Load environment variables from .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Shared collection namespace (one public collection per app id)
APP_ID: Final[str] = os.getenv('TRIP_APP_ID', DEFAULT_APP_ID)

# Firebase web config as JSON: {"apiKey": "...", "projectId": "..."}
FIREBASE_CONFIG_JSON: Final[str] = os.getenv('TRIP_FIREBASE_CONFIG', '{}')

# Continuation token handed over by the hosting page, if any
INITIAL_AUTH_TOKEN: Final[Optional[str]] = os.getenv('TRIP_INITIAL_AUTH_TOKEN') or None

# Remote store settings
POLL_INTERVAL: Final[float] = float(os.getenv('TRIP_POLL_INTERVAL', '2.0'))
HTTP_TIMEOUT: Final[float] = float(os.getenv('TRIP_HTTP_TIMEOUT', '10.0'))

LOG_LEVEL: Final[str] = os.getenv('LOG_LEVEL', 'INFO').upper()

logger = logging.getLogger(__name__)


def collection_path(app_id: str = APP_ID) -> str:
    """Path of the shared plans collection for the given app id."""
    return PLANS_COLLECTION_TEMPLATE.format(app_id=app_id)


def load_firebase_config(raw: Optional[str] = None) -> dict:
    """Parse the Firebase config JSON; an unparsable value yields an empty dict."""
    raw = FIREBASE_CONFIG_JSON if raw is None else raw
    try:
        data = json.loads(raw or '{}')
    except json.JSONDecodeError as e:
        logger.error(f"Invalid TRIP_FIREBASE_CONFIG JSON: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
