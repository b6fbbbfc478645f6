"""
Configuration module for the registry validator.

This module provides configuration loading and validation for the validator:
directory API location and credentials, file locations, and which optional
rule sets are enforced.
"""
# [CTX:PBI-1:1-4:CFG]

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml


DEFAULT_CONFIG_PATH = Path("config") / "validator.yml"

DEFAULT_CONFIG: dict[str, Any] = {
    "api_url": "https://api.github.com",
    "token": None,
    "registry_path": "registry.yaml",
    "output_path": "tmp/validation-result.json",
    "require_wallets": False,
    "check_ecosystem": True,
    "timeout": None,
    "user_agent": "flow-registry-validator",
}

# Environment variable -> config field
ENV_OVERRIDES = {
    "GITHUB_TOKEN": "token",
    "GITHUB_API_URL": "api_url",
}


class ConfigValidationError(ValueError):
    """Raised when validator configuration is invalid."""
    pass


@dataclass
class ValidatorConfig:
    """Configuration for a single validation run."""

    api_url: str = DEFAULT_CONFIG["api_url"]
    token: str | None = None
    registry_path: str = DEFAULT_CONFIG["registry_path"]
    output_path: str = DEFAULT_CONFIG["output_path"]
    require_wallets: bool = False
    check_ecosystem: bool = True
    timeout: float | None = None  # seconds, whole request
    user_agent: str = DEFAULT_CONFIG["user_agent"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidatorConfig":
        """Create ValidatorConfig from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {**DEFAULT_CONFIG, **{k: v for k, v in data.items() if k in known}}
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. The token is masked."""
        result = asdict(self)
        if result["token"]:
            result["token"] = "***"
        return result

    def apply_env(self, environ: Mapping[str, str] | None = None) -> "ValidatorConfig":
        """
        Overlay values from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            self, for chaining
        """
        environ = os.environ if environ is None else environ
        for env_name, field_name in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                setattr(self, field_name, value)
        return self


def get_default_config() -> ValidatorConfig:
    """Return a fresh config populated with defaults."""
    return ValidatorConfig.from_dict(DEFAULT_CONFIG)


def load_config(config_path: str | Path | None = None) -> ValidatorConfig:
    """
    Load validator configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses config/validator.yml.

    Returns:
        ValidatorConfig (defaults if the file is missing or empty)

    Raises:
        ConfigValidationError: If the file is invalid YAML or fails validation
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        # Return default config if file doesn't exist
        return get_default_config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}")

    if not data:
        return get_default_config()

    if not isinstance(data, dict):
        raise ConfigValidationError("Configuration must be a dictionary")

    config = ValidatorConfig.from_dict(data)
    validate_config(config)
    return config


def validate_config(config: ValidatorConfig) -> None:
    """
    Validate configuration.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not config.api_url or not isinstance(config.api_url, str):
        raise ConfigValidationError("api_url must be a non-empty string")

    if not config.api_url.startswith(("http://", "https://")):
        raise ConfigValidationError(f"api_url must be an http(s) URL, got '{config.api_url}'")

    if config.timeout is not None:
        if isinstance(config.timeout, bool) or not isinstance(config.timeout, (int, float)) or config.timeout <= 0:
            raise ConfigValidationError("timeout must be a positive number")

    for name in ("registry_path", "output_path"):
        value = getattr(config, name)
        if not value or not isinstance(value, str):
            raise ConfigValidationError(f"{name} must be a non-empty string")

    for name in ("require_wallets", "check_ecosystem"):
        if not isinstance(getattr(config, name), bool):
            raise ConfigValidationError(f"{name} must be a boolean")
