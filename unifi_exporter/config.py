"""Configuration management for the UniFi exporter"""

import logging
import os
from typing import Any, Optional

import yaml
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from unifi_exporter.unifi.session import ApiKeyAuth, Credentials, PasswordAuth

VALID_LOG_LEVELS = ("trace", "debug", "info", "warn", "error")

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class Config(BaseSettings):
    """Exporter configuration, read from environment variables (or .env)"""

    # Controller
    unifi_controller_url: str = ""  # e.g., https://192.168.1.1:8443
    unifi_api_key: Optional[str] = None  # Use either API key or username/password
    unifi_username: Optional[str] = None
    unifi_password: Optional[str] = None
    unifi_site: str = "default"
    verify_ssl: bool = True
    http_timeout: int = 10  # seconds

    # Exporter
    metrics_host: str = "0.0.0.0"
    metrics_port: int = 9897
    poll_interval: int = 30  # seconds
    log_level: str = "info"  # trace, debug, info, warn, error

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("unifi_api_key", "unifi_username", "unifi_password", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("unifi_controller_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value:
            raise ValueError("UNIFI_CONTROLLER_URL cannot be empty")
        if not value.startswith(("http://", "https://")):
            raise ValueError("UNIFI_CONTROLLER_URL must start with http:// or https://")
        return value

    @field_validator("poll_interval")
    @classmethod
    def _check_poll_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("POLL_INTERVAL must be greater than 0")
        return value

    @field_validator("http_timeout")
    @classmethod
    def _check_http_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("HTTP_TIMEOUT must be greater than 0")
        return value

    @field_validator("metrics_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if value == 0:
            raise ValueError("METRICS_PORT cannot be 0")
        if not 0 < value <= 65535:
            raise ValueError("METRICS_PORT must be between 1 and 65535")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}")
        return value

    @model_validator(mode="after")
    def _check_credentials(self) -> "Config":
        if self.unifi_api_key is None and (
            self.unifi_username is None or self.unifi_password is None
        ):
            raise ValueError(
                "Either UNIFI_API_KEY or both UNIFI_USERNAME and UNIFI_PASSWORD must be provided"
            )
        return self

    def credentials(self) -> Credentials:
        """The active credential variant; an API key takes precedence"""
        if self.unifi_api_key is not None:
            return ApiKeyAuth(self.unifi_api_key)
        return PasswordAuth(self.unifi_username, self.unifi_password)

    def logging_level(self) -> int:
        return _LOG_LEVELS[self.log_level]

    @classmethod
    def from_yaml(cls, yaml_path: str = "config.yaml", **overrides: Any) -> "Config":
        """Load configuration from a YAML file; explicit overrides win"""
        data = {}
        if os.path.exists(yaml_path):
            with open(yaml_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{yaml_path} must contain a mapping of settings")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)
