"""Configuration management module.

Persists the defaults used when a command omits them:
- subscription_id
- resource_group
- vault_resource_group (falls back to resource_group)
- vault_name

Stored as TOML at ~/.azvm/config.toml (override with --config or AZVM_CONFIG).
The file is written atomically with owner-only permissions.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python 3.11+ where tomllib is built in
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

import tomlkit

from azvm.exceptions import (
    ConfigError,
    NoResourceGroupError,
    NoSubscriptionError,
    NoVaultError,
)
from azvm.models import VaultScope

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AZVM_CONFIG"


@dataclass
class AzvmConfig:
    """azvm configuration data."""

    subscription_id: str | None = None
    resource_group: str | None = None
    vault_resource_group: str | None = None
    vault_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AzvmConfig":
        return cls(
            subscription_id=data.get("subscription_id"),
            resource_group=data.get("resource_group"),
            vault_resource_group=data.get("vault_resource_group"),
            vault_name=data.get("vault_name"),
        )


class ConfigManager:
    """Manage the azvm configuration file."""

    DEFAULT_CONFIG_DIR = Path.home() / ".azvm"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Order: custom_path, then AZVM_CONFIG, then ~/.azvm/config.toml.
        """
        custom = custom_path or os.getenv(CONFIG_ENV_VAR)
        if custom:
            return Path(custom).expanduser().resolve()
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> AzvmConfig:
        """Load configuration from file.

        Returns:
            AzvmConfig (defaults when the file does not exist)

        Raises:
            ConfigError: If the file exists but cannot be read
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return AzvmConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return AzvmConfig.from_dict(data)

        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: AzvmConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Existing comments and formatting are preserved (tomlkit).

        Returns:
            Path written

        Raises:
            ConfigError: If saving fails
        """
        config_path = cls.get_config_path(custom_path)
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            if config_path.parent == cls.DEFAULT_CONFIG_DIR:
                os.chmod(config_path.parent, 0o700)

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> AzvmConfig:
        """Update and save configuration values.

        None values are ignored; unknown keys are logged and skipped.
        """
        config = cls.load_config(custom_path)

        for key, value in updates.items():
            if value is None:
                continue
            if hasattr(config, key):
                logger.debug(f"Setting default {key} to: {value}")
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")

        cls.save_config(config, custom_path)
        return config

    # ------------------------------------------------------------------
    # Resolution: CLI value > config file > error
    # ------------------------------------------------------------------

    @classmethod
    def get_subscription_id(
        cls, cli_value: str | None = None, custom_path: str | None = None
    ) -> str:
        """Raises NoSubscriptionError if neither CLI nor config provides one."""
        value = cli_value or cls.load_config(custom_path).subscription_id
        if not value:
            raise NoSubscriptionError()
        return value

    @classmethod
    def get_resource_group(
        cls, cli_value: str | None = None, custom_path: str | None = None
    ) -> str:
        """Raises NoResourceGroupError if neither CLI nor config provides one."""
        value = cli_value or cls.load_config(custom_path).resource_group
        if not value:
            raise NoResourceGroupError()
        return value

    @classmethod
    def get_vault_name(cls, cli_value: str | None = None, custom_path: str | None = None) -> str:
        """Raises NoVaultError if neither CLI nor config provides one."""
        value = cli_value or cls.load_config(custom_path).vault_name
        if not value:
            raise NoVaultError()
        return value

    @classmethod
    def get_vault_resource_group(
        cls,
        cli_value: str | None = None,
        resource_group: str | None = None,
        custom_path: str | None = None,
    ) -> str:
        """Vault group from CLI, then config, then the VM resource group."""
        value = (
            cli_value or cls.load_config(custom_path).vault_resource_group or resource_group
        )
        if not value:
            raise NoResourceGroupError()
        return value

    @classmethod
    def resolve_vault_scope(
        cls,
        subscription_id: str | None = None,
        resource_group: str | None = None,
        vault_name: str | None = None,
        vault_resource_group: str | None = None,
        custom_path: str | None = None,
    ) -> VaultScope:
        """Resolve every value needed for backup registration."""
        sub = cls.get_subscription_id(subscription_id, custom_path)
        group = cls.get_resource_group(resource_group, custom_path)
        vault = cls.get_vault_name(vault_name, custom_path)
        vault_group = cls.get_vault_resource_group(vault_resource_group, group, custom_path)
        return VaultScope(
            subscription_id=sub,
            resource_group=group,
            vault_name=vault,
            vault_resource_group=vault_group,
        )


__all__ = ["AzvmConfig", "ConfigManager"]
