"""Configuration loading for autoupdate.

Loads YAML configuration from an explicit path, ``$AUTOUPDATE_CONFIG``, or
the first file found in the standard locations.

Config file example (~/.config/autoupdate.yaml):
    providers:
      - type: github        # github | gitlab | azuredevops
        token: ${GITHUB_TOKEN}
        organizations:
          - my-org
    updaters:
      terraform:
        enabled: true
        auto_complete: false
        target_branch: ""
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AUTOUPDATE_CONFIG"
CONFIG_FILENAMES = [".autoupdate.yaml", ".autoupdate.yml", "autoupdate.yaml", "autoupdate.yml"]

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class ProviderConfig:
    """A Git hosting provider instance and the organizations to scan on it."""

    type: str
    token: str
    organizations: list[str] = field(default_factory=list)
    base_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        orgs = data.get("organizations") or []
        if isinstance(orgs, str):
            orgs = [orgs]
        return cls(
            type=str(data.get("type") or ""),
            token=resolve_token(str(data.get("token") or "")),
            organizations=[str(o) for o in orgs],
            base_url=str(data.get("base_url") or ""),
        )


@dataclass
class UpdaterConfig:
    """Per-updater settings."""

    enabled: bool = True
    auto_complete: bool = False
    target_branch: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdaterConfig:
        return cls(
            enabled=bool(data.get("enabled", True)),
            auto_complete=bool(data.get("auto_complete", False)),
            target_branch=str(data.get("target_branch") or ""),
        )


@dataclass
class Config:
    """Top-level configuration."""

    providers: list[ProviderConfig] = field(default_factory=list)
    updaters: dict[str, UpdaterConfig] = field(default_factory=dict)

    # File this config was read from (not part of the schema)
    path: Path | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | None = None) -> Config:
        providers = data.get("providers") or []
        updaters = data.get("updaters") or {}
        if not isinstance(providers, list):
            raise ConfigError("'providers' must be a list")
        if not isinstance(updaters, dict):
            raise ConfigError("'updaters' must be a mapping")
        return cls(
            providers=[ProviderConfig.from_dict(p or {}) for p in providers],
            updaters={
                name: UpdaterConfig.from_dict(settings or {})
                for name, settings in updaters.items()
            },
            path=path,
        )

    def updater(self, name: str) -> UpdaterConfig:
        """Settings for an updater, defaulting to enabled."""
        return self.updaters.get(name, UpdaterConfig())

    def validate(self) -> None:
        """Raise ``ConfigError`` for missing required values."""
        if not self.providers:
            raise ConfigError("at least one provider must be configured")
        for i, provider in enumerate(self.providers):
            if not provider.type:
                raise ConfigError(f"providers[{i}].type is required")
            if not provider.token:
                raise ConfigError(
                    f"providers[{i}].token is required "
                    "(set inline, via ${ENV_VAR}, or as file path)"
                )
            if not provider.organizations:
                raise ConfigError(f"providers[{i}].organizations must have at least one entry")


def resolve_token(raw: str) -> str:
    """Expand ``${VAR}`` placeholders; read the token from a file if one is named."""
    if not raw:
        return raw

    def _expand(match: re.Match[str]) -> str:
        name = match.group(1)
        value = os.environ.get(name)
        if not value:
            logger.warning(f"Environment variable {name!r} is not set")
            return ""
        return value

    resolved = _ENV_VAR_RE.sub(_expand, raw)
    if not resolved:
        return resolved

    token_file = Path(resolved).expanduser()
    try:
        if token_file.is_file():
            logger.info(f"Read token from file {str(token_file)!r}")
            return token_file.read_text().strip()
    except OSError as e:
        logger.warning(f"Failed to read token file {str(token_file)!r}: {e}")
    return resolved


def _search_dirs() -> list[Path]:
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    home = Path.home()
    return [
        Path("."),
        Path(".config"),
        Path("configs"),
        home,
        Path(xdg_config) if xdg_config else home / ".config",
    ]


def find_config_file() -> Path:
    """Locate the configuration file.

    Raises:
        ConfigError: If no file exists in any standard location.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    for directory in _search_dirs():
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate

    raise ConfigError("config file not found in default locations")


def load_config(path: Path | None = None) -> Config:
    """Load and validate configuration.

    Args:
        path: Optional explicit config path. Searched for when omitted.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or find_config_file()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"failed to read config file {str(config_path)!r}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a mapping")

    config = Config.from_dict(data, path=config_path)
    config.validate()
    return config
