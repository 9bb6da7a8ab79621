from dotenv import load_dotenv
import os
from typing import List, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()

# Database configuration
DB_HOST = os.getenv("MYSQL_HOST", "db")
DB_USER = os.getenv("MYSQL_USER", "user")
DB_PASSWORD = os.getenv("MYSQL_PASSWORD", "123456")
DB_NAME = os.getenv("MYSQL_DB", "rentcar")
DB_PORT = os.getenv("MYSQL_PORT", "3306")

# JWT configuration
SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key_here")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Application configuration
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))

# Base URL configuration
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")

# Upload configuration
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
INVOICE_BUCKET = os.getenv("INVOICE_BUCKET", "invoices")
PRESIGNED_URL_TTL_SECONDS = int(os.getenv("PRESIGNED_URL_TTL_SECONDS", "3600"))

# Cache configuration
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Background sweep of stale pending bookings
EXPIRY_SWEEP_ENABLED = os.getenv("EXPIRY_SWEEP_ENABLED", "true").lower() == "true"
EXPIRY_SWEEP_INTERVAL_SECONDS = int(os.getenv("EXPIRY_SWEEP_INTERVAL_SECONDS", "60"))

# Database URL
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)


class BookingPolicy(BaseSettings):
    """Tunable rules of the booking lifecycle and pricing engine.

    Every value can be overridden from the environment with a ``BOOKING_``
    prefix, e.g. ``BOOKING_TAX_RATE_PERCENT=10``.
    """

    model_config = SettingsConfigDict(env_prefix="BOOKING_", extra="ignore")

    buffer_hours: int = 4
    extension_hours: int = 4
    min_notice_hours: int = 4
    extension_service_fee_percent: int = 10
    tax_rate_percent: int = 8
    tax_applies_to_surcharges: bool = False
    pending_timeout_minutes: int = 30
    pickup_grace_minutes: int = 60

    # (upper bound in hours, percent of base price); past the last bound the
    # full base price is charged
    late_fee_tiers: List[Tuple[int, int]] = [(1, 0), (4, 20), (8, 50)]
    late_fee_max_percent: int = 100
