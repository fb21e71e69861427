"""Configuration management for transgate adapters."""
import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError


CONFIG_PATH = Path.home() / ".transgate" / "config.json"

DEFAULTS = {
    "engine": "freed",
    "engines": {},
}

REQUIRED_STRING_FIELDS = (
    "url",
    "languageModel",
    "usageType",
    "acceptLanguage",
    "appOsVersion",
    "appDevice",
    "appBuild",
    "appVersion",
    "userAgent",
)

DEFAULT_CONCURRENT = 8


def _require_str(configs: Mapping[str, Any], key: str) -> str:
    if key not in configs or configs[key] is None:
        raise ConfigurationError(f"Missing required config field '{key}'")
    value = configs[key]
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Config field '{key}' must be a string, got {type(value).__name__}"
        )
    return value


def _require_number(configs: Mapping[str, Any], key: str, integral: bool = False):
    if key not in configs or configs[key] is None:
        raise ConfigurationError(f"Missing required config field '{key}'")
    value = configs[key]
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(
            f"Config field '{key}' must be a number, got {type(value).__name__}"
        )
    if integral and value != int(value):
        raise ConfigurationError(f"Config field '{key}' must be a whole number, got {value}")
    if value < 0:
        raise ConfigurationError(f"Config field '{key}' must not be negative, got {value}")
    return int(value) if integral else value


@dataclass(frozen=True)
class AdapterConfig:
    """Validated, read-only adapter configuration."""

    url: str
    language_model: str
    usage_type: str
    accept_language: str
    app_os_version: str
    app_device: str
    app_build: str
    app_version: str
    user_agent: str
    retry_count: int
    retry_delay_ms: float
    concurrent: int = DEFAULT_CONCURRENT
    auth_token: Optional[str] = None
    strict_length: bool = True

    @classmethod
    def from_mapping(cls, configs: Mapping[str, Any]) -> "AdapterConfig":
        """Build config from a raw configuration map.

        Args:
            configs: Map with the camelCase keys used in config files

        Returns:
            AdapterConfig instance

        Raises:
            ConfigurationError: If a required field is absent or mistyped
        """
        if not isinstance(configs, Mapping):
            raise ConfigurationError(
                f"Adapter config must be a mapping, got {type(configs).__name__}"
            )

        strings = {key: _require_str(configs, key) for key in REQUIRED_STRING_FIELDS}

        concurrent = DEFAULT_CONCURRENT
        if configs.get("concurrent") is not None:
            concurrent = _require_number(configs, "concurrent", integral=True)
            if concurrent < 1:
                raise ConfigurationError("Config field 'concurrent' must be at least 1")

        auth_token = None
        if configs.get("authToken") is not None:
            auth_token = _require_str(configs, "authToken")

        strict_length = configs.get("strictLength", True)
        if not isinstance(strict_length, bool):
            raise ConfigurationError(
                f"Config field 'strictLength' must be a boolean, got {type(strict_length).__name__}"
            )

        return cls(
            url=strings["url"],
            language_model=strings["languageModel"],
            usage_type=strings["usageType"],
            accept_language=strings["acceptLanguage"],
            app_os_version=strings["appOsVersion"],
            app_device=strings["appDevice"],
            app_build=strings["appBuild"],
            app_version=strings["appVersion"],
            user_agent=strings["userAgent"],
            retry_count=_require_number(configs, "retryCount", integral=True),
            retry_delay_ms=_require_number(configs, "retryDelayMs"),
            concurrent=concurrent,
            auth_token=auth_token,
            strict_length=strict_length,
        )

    @property
    def retry_delay(self) -> float:
        """Retry delay in seconds."""
        return self.retry_delay_ms / 1000.0

    def headers(self) -> Dict[str, str]:
        """Fixed header set sent with every request."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "*/*",
            "Connection": "keep-alive",
            "x-app-os-version": self.app_os_version,
            "x-app-device": self.app_device,
            "User-Agent": self.user_agent,
            "x-app-build": self.app_build,
            "x-app-version": self.app_version,
            "Accept-Language": self.accept_language,
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers


def _config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.getenv("TRANSGATE_CONFIG")
    return Path(env_path) if env_path else CONFIG_PATH


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load saved configuration, merged with defaults.

    Raises:
        ConfigurationError: If the file exists but is not valid JSON
    """
    config = copy.deepcopy(DEFAULTS)
    config_path = _config_path(path)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                saved = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e
        if not isinstance(saved, dict):
            raise ConfigurationError(f"Config file {config_path} must hold a JSON object")
        config.update(saved)
    return config


def save_config(config: Dict[str, Any], path: Optional[Path] = None):
    """Save configuration to disk."""
    config_path = _config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
