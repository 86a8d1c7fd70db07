"""Configuration service for managing application settings."""

import json
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig
from ..models.config import DEFAULT_COLLECTION_URL, DEFAULT_THING_URL

log = structlog.stdlib.get_logger()

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for loading, validating and saving ``AppConfig``."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "boardshelf" / "config.json"
        log.info("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file or return default configuration."""
        if not self.config_path.exists():
            log.info("Configuration file not found, using defaults")
            return self._get_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded successfully")
            return config

        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self._get_default_config()

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file.

        Raises:
            ValueError: If the configuration does not validate
            OSError: If the file cannot be written
        """
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config_to_dict(config), f, indent=2, ensure_ascii=False)
            log.info("Configuration saved successfully")
        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.username, str):
            errors.append("username must be a string")

        if "{username}" not in config.collection_url:
            errors.append("collection_url must contain a {username} placeholder")
        elif not config.collection_url.startswith(("http://", "https://")):
            errors.append("collection_url must be an http(s) URL")

        if not config.thing_url.startswith(("http://", "https://")):
            errors.append("thing_url must be an http(s) URL")

        if not isinstance(config.batch_size, int) or config.batch_size < 1:
            errors.append("batch_size must be a positive integer")
        elif config.batch_size > 100:
            errors.append("batch_size should not exceed 100")

        if not isinstance(config.batch_delay, (int, float)) or config.batch_delay < 0:
            errors.append("batch_delay must be a non-negative number")
        elif config.batch_delay > 60:
            errors.append("batch_delay should not exceed 60 seconds")

        if config.batch_timeout is not None and (
            not isinstance(config.batch_timeout, (int, float)) or config.batch_timeout <= 0
        ):
            errors.append("batch_timeout must be a positive number or None")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")

        if not isinstance(config.max_retries, int) or config.max_retries < 0:
            errors.append("max_retries must be a non-negative integer")
        elif config.max_retries > 10:
            errors.append("max_retries should not exceed 10")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        return AppConfig(username="")

    def _config_to_dict(self, config: AppConfig) -> dict[str, Any]:
        return {
            "username": config.username,
            "collection_url": config.collection_url,
            "thing_url": config.thing_url,
            "batch_size": config.batch_size,
            "batch_delay": config.batch_delay,
            "batch_timeout": config.batch_timeout,
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "log_level": config.log_level,
        }

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        # Missing keys fall back to the defaults; wrong types fail validation
        batch_timeout_raw = data.get("batch_timeout")
        batch_timeout: float | None = None
        if batch_timeout_raw is not None and batch_timeout_raw != "":
            batch_timeout = float(batch_timeout_raw)

        return AppConfig(
            username=str(data.get("username", "")),
            collection_url=str(data.get("collection_url", DEFAULT_COLLECTION_URL)),
            thing_url=str(data.get("thing_url", DEFAULT_THING_URL)),
            batch_size=data.get("batch_size", 20),
            batch_delay=data.get("batch_delay", 0.1),
            batch_timeout=batch_timeout,
            request_timeout=data.get("request_timeout", 30.0),
            max_retries=data.get("max_retries", 3),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )
