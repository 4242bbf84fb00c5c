"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
logging level and the money tolerances used by the balance engine. It uses environment variables for sensitive
information and defaults for development. In production, make sure to set the appropriate environment variables
and secure the secret key.
"""

import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'mfg_erp.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for form posts
    WTF_CSRF_ENABLED = True

    APP_NAME = "Manufacturing ERP"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Purchase total must match round(quantity * unit_price, 2) within this amount
    MONEY_TOLERANCE = Decimal("0.01")

    # Slack allowed when comparing paid amount against a sale's net amount
    PAYMENT_EPSILON = Decimal("0.01")


class TestConfig(Config):
    """In-memory database, no CSRF. Used by the test-suite."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = "WARNING"
