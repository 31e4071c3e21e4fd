"""
Startup configuration checks for the feed service.

Production refuses to boot with missing secrets or an out-of-range feed
cadence; development falls back to local defaults and reports warnings.
"""

import os
import sys
import warnings
import secrets
from typing import List, Optional


class ConfigValidationError(Exception):
    """Configuration is unusable and the service must not start."""
    pass


MIN_FEED_INTERVAL_MS = 200
MAX_FEED_INTERVAL_MS = 60_000
DEFAULT_FEED_INTERVAL_MS = 2000
DEFAULT_FEED_CURRENCY = '₺'
DEFAULT_GAME_IMAGE_DIR = 'uploads/games'

DEV_SERVICE_TOKEN = 'default_service_token_please_change'
DEV_DATABASE_URI = 'sqlite:///feed_dev.db'
SUPPORTED_DATABASE_SCHEMES = ('postgresql://', 'postgresql+psycopg2://', 'sqlite://')

_TRUTHY = ('true', '1', 't', 'yes')


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


class ConfigValidator:
    """Collects configuration problems; errors abort startup, warnings are reported."""

    def __init__(self, is_production: bool = None):
        """
        Args:
            is_production: force the mode; when None it follows FLASK_ENV
        """
        if is_production is None:
            is_production = os.getenv('FLASK_ENV', '').lower() == 'production'

        self.is_production = is_production
        self.is_testing = _env_flag('TESTING', 'False')
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _problem(self, message: str):
        """An error in production, a warning everywhere else."""
        if self.is_production:
            self.errors.append(f"CRITICAL: {message}")
        else:
            self.warnings.append(f"WARNING: {message}")

    def validate_required_env_var(self, var_name: str, description: str = None) -> Optional[str]:
        value = os.getenv(var_name)
        if not value:
            self._problem(f"{description or var_name} ({var_name}) is not set")
        return value

    def validate_secret_key(self) -> str:
        secret_key = self.validate_required_env_var('SECRET_KEY', 'Flask secret key')
        if not secret_key:
            return secrets.token_urlsafe(32)
        if len(secret_key) < 16:
            self._problem("SECRET_KEY must be at least 16 characters long")
        return secret_key

    def validate_database_config(self) -> str:
        database_url = os.getenv('DATABASE_URL')
        if not database_url:
            self._problem("DATABASE_URL is not set")
            return '' if self.is_production else DEV_DATABASE_URI

        if not database_url.startswith(SUPPORTED_DATABASE_SCHEMES):
            self.errors.append(f"CRITICAL: DATABASE_URL scheme not supported (use one of {SUPPORTED_DATABASE_SCHEMES})")
        return database_url

    def validate_service_config(self) -> Optional[str]:
        """Token guarding the admin API."""
        service_token = os.getenv('SERVICE_API_TOKEN')
        if not service_token:
            self._problem("SERVICE_API_TOKEN is not set, admin routes would use the development token")
            return None if self.is_production else DEV_SERVICE_TOKEN

        if service_token == DEV_SERVICE_TOKEN:
            self._problem("SERVICE_API_TOKEN is still the development token")
        return service_token

    def validate_feed_config(self) -> dict:
        raw_interval = os.getenv('FEED_INTERVAL_MS', str(DEFAULT_FEED_INTERVAL_MS))
        try:
            interval_ms = int(raw_interval)
        except ValueError:
            raise ConfigValidationError(f"FEED_INTERVAL_MS must be whole milliseconds, got {raw_interval!r}")

        if not MIN_FEED_INTERVAL_MS <= interval_ms <= MAX_FEED_INTERVAL_MS:
            # Out of range in any environment
            self.errors.append(
                f"CRITICAL: FEED_INTERVAL_MS must be between {MIN_FEED_INTERVAL_MS} and "
                f"{MAX_FEED_INTERVAL_MS}, got {interval_ms}"
            )

        currency = os.getenv('FEED_CURRENCY', DEFAULT_FEED_CURRENCY).strip() or DEFAULT_FEED_CURRENCY
        if len(currency) > 8:
            self.errors.append(f"CRITICAL: FEED_CURRENCY {currency!r} is longer than 8 characters")

        return {
            'FEED_INTERVAL_MS': interval_ms,
            'FEED_CURRENCY': currency,
            'FEED_AUTOSTART': _env_flag('FEED_AUTOSTART', 'True'),
            'GAME_IMAGE_DIR': os.getenv('GAME_IMAGE_DIR', DEFAULT_GAME_IMAGE_DIR),
        }

    def validate_cors_config(self) -> List[str]:
        origins = [o.strip() for o in os.getenv('CORS_ORIGINS', '').split(',') if o.strip()]
        if not origins:
            if self.is_production:
                self.errors.append("CRITICAL: CORS_ORIGINS must list the frontend origins in production")
            return []

        for origin in origins:
            if not origin.startswith(('http://', 'https://')):
                self.warnings.append(f"CORS origin '{origin}' has no http:// or https:// scheme")
        return origins

    def validate_all(self) -> dict:
        """
        Run every check and return the validated settings.

        Raises:
            ConfigValidationError: when any error was collected
        """
        config = {
            'SECRET_KEY': self.validate_secret_key(),
            'SQLALCHEMY_DATABASE_URI': self.validate_database_config(),
            'SERVICE_API_TOKEN': self.validate_service_config(),
            'CORS_ORIGINS': self.validate_cors_config(),
            'DEBUG': _env_flag('FLASK_DEBUG', 'False'),
        }
        config.update(self.validate_feed_config())

        if self.is_production and config['DEBUG']:
            self.errors.append("CRITICAL: FLASK_DEBUG must be off in production")

        if self.errors:
            report = "Feed configuration is invalid:\n" + "\n".join(f"  - {e}" for e in self.errors)
            if self.warnings:
                report += "\n\nWarnings:\n" + "\n".join(f"  - {w}" for w in self.warnings)
            raise ConfigValidationError(report)

        if not self.is_testing:
            for warning in self.warnings:
                warnings.warn(warning, UserWarning)
        return config


def validate_production_config() -> dict:
    """
    Validate the environment at import time of the config module.

    Raises:
        SystemExit: when validation fails
    """
    try:
        return ConfigValidator().validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nSet DATABASE_URL, SECRET_KEY and SERVICE_API_TOKEN, and keep FEED_INTERVAL_MS "
              f"within {MIN_FEED_INTERVAL_MS}..{MAX_FEED_INTERVAL_MS}.\n", file=sys.stderr)
        sys.exit(1)
