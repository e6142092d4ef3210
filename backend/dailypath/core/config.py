# dailypath/core/config.py
import os
import logging
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings

# --- Path Setup & .env Loading ---
# .env lives in the backend directory, two levels up from core
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / '.env'

if ENV_PATH.is_file():
    load_dotenv(dotenv_path=ENV_PATH)
else:
    # Logger is not configured yet at this point
    print(f"Warning: .env file not found at {ENV_PATH}. Relying on system environment variables.")

# --- Pydantic Settings Class ---
class Settings(BaseSettings):
    PROJECT_NAME: str = "DailyPath API"
    DEBUG: bool = False
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # Database Settings
    MONGODB_URL: Optional[str] = None
    DB_NAME: str = "dailypath_dev"
    MONGODB_TLS: bool = True

    # Auth provider (GoTrue-compatible REST API)
    AUTH_URL: Optional[str] = None
    AUTH_ANON_KEY: Optional[str] = None
    AUTH_SERVICE_ROLE_KEY: Optional[str] = None
    AUTH_JWT_SECRET: Optional[str] = None
    AUTH_JWT_AUDIENCE: str = "authenticated"

    # Session cookie carrying the access token for browser clients
    SESSION_COOKIE_NAME: str = "dailypath-access-token"
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_MAX_AGE: int = 60 * 60

    CORS_ORIGINS: List[str] = [
        "http://localhost:4321",  # Astro dev server
        "http://localhost:3000",
        "http://127.0.0.1:4321",
    ]

    # GET /api/users is open while the app runs in test mode
    USERS_LIST_REQUIRES_AUTH: bool = False

    # Rate limiting for login and password reset endpoints
    AUTH_RATE_LIMIT_MAX_REQUESTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Business rules
    TIME_LOG_EDIT_WINDOW_DAYS: int = 7
    INVITATION_TTL_DAYS: int = 7

    # Used to build links sent in invitation and password reset emails
    APP_BASE_URL: str = "http://localhost:4321"

# Create an instance of the Settings class
settings = Settings()

# --- Logging Setup ---
LOG_LEVEL_NAME: str = os.getenv("LOG_LEVEL", "WARNING").upper()
if settings.DEBUG:
    LOG_LEVEL_NAME = "DEBUG"

ACTUAL_LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.WARNING)

logging.basicConfig(
    level=ACTUAL_LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logging.getLogger('uvicorn').setLevel(logging.WARNING)
logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
logging.getLogger('fastapi').setLevel(logging.INFO if settings.DEBUG else logging.WARNING)
logging.getLogger('motor').setLevel(logging.WARNING)
logging.getLogger('pymongo').setLevel(logging.WARNING)
logging.getLogger('httpx').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# --- Validate critical settings after loading ---
if not settings.MONGODB_URL:
    logger.critical("CRITICAL: MONGODB_URL environment variable is not set and no default provided.")

if not settings.AUTH_URL:
    logger.warning("AUTH_URL environment variable is not set. Login and user management will fail.")
if not settings.AUTH_JWT_SECRET:
    logger.warning("AUTH_JWT_SECRET environment variable is not set. Token validation will fail.")
if not settings.AUTH_SERVICE_ROLE_KEY:
    logger.warning("AUTH_SERVICE_ROLE_KEY environment variable is not set. Admin user management will fail.")

if settings.DEBUG:
    logger.debug(f"PROJECT_NAME: {settings.PROJECT_NAME}")
    logger.debug(f"API_PREFIX: {settings.API_PREFIX}")
    logger.debug(f"DB_NAME: {settings.DB_NAME}")
    logger.debug(f"AUTH_URL: {settings.AUTH_URL}")
    logger.debug(f"MONGODB_URL Set: {'Yes' if settings.MONGODB_URL else 'No - CRITICAL'}")
    logger.debug(f"AUTH_JWT_SECRET Set: {'Yes' if settings.AUTH_JWT_SECRET else 'No - WARNING'}")

# Module-level aliases for the values most modules need
PROJECT_NAME = settings.PROJECT_NAME
DEBUG = settings.DEBUG
VERSION = settings.VERSION
API_PREFIX = settings.API_PREFIX
MONGODB_URL = settings.MONGODB_URL
DB_NAME = settings.DB_NAME
AUTH_URL = settings.AUTH_URL
AUTH_JWT_SECRET = settings.AUTH_JWT_SECRET
AUTH_JWT_AUDIENCE = settings.AUTH_JWT_AUDIENCE
SESSION_COOKIE_NAME = settings.SESSION_COOKIE_NAME
