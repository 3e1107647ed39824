"""Unit tests for config_manager module."""

import os
import stat

import pytest

from azvm.config_manager import AzvmConfig, ConfigManager
from azvm.exceptions import ConfigError, NoResourceGroupError, NoSubscriptionError, NoVaultError


class TestAzvmConfig:
    """Test AzvmConfig dataclass."""

    def test_to_dict_skips_none(self):
        config = AzvmConfig(subscription_id="sub-123", vault_name="vault-1")

        assert config.to_dict() == {"subscription_id": "sub-123", "vault_name": "vault-1"}

    def test_from_dict(self):
        config = AzvmConfig.from_dict({"resource_group": "rg", "unrelated": "x"})

        assert config == AzvmConfig(resource_group="rg")


class TestConfigPath:
    def test_custom_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AZVM_CONFIG", str(tmp_path / "env.toml"))

        path = ConfigManager.get_config_path(str(tmp_path / "custom.toml"))

        assert path == (tmp_path / "custom.toml").resolve()

    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AZVM_CONFIG", str(tmp_path / "env.toml"))

        assert ConfigManager.get_config_path() == (tmp_path / "env.toml").resolve()

    def test_default(self, monkeypatch):
        monkeypatch.delenv("AZVM_CONFIG", raising=False)

        assert ConfigManager.get_config_path() == ConfigManager.DEFAULT_CONFIG_FILE


class TestLoadSave:
    """Test reading and writing the config file."""

    def test_missing_file_returns_defaults(self, mock_config_path):
        assert ConfigManager.load_config() == AzvmConfig()

    def test_round_trip(self, mock_config_path):
        ConfigManager.save_config(AzvmConfig(subscription_id="sub-123", resource_group="rg"))

        assert ConfigManager.load_config() == AzvmConfig(
            subscription_id="sub-123", resource_group="rg"
        )

    def test_saved_file_is_owner_only(self, mock_config_path):
        path = ConfigManager.save_config(AzvmConfig(vault_name="vault-1"))

        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert not path.with_suffix(".tmp").exists()

    def test_save_preserves_comments(self, mock_config_path):
        mock_config_path.write_text('# my defaults\nresource_group = "rg-old"\n')

        ConfigManager.save_config(AzvmConfig(resource_group="rg-new"))

        content = mock_config_path.read_text()
        assert "# my defaults" in content
        assert 'resource_group = "rg-new"' in content

    def test_insecure_permissions_are_fixed(self, mock_config_path):
        mock_config_path.write_text('vault_name = "vault-1"\n')
        os.chmod(mock_config_path, 0o644)

        ConfigManager.load_config()

        assert stat.S_IMODE(mock_config_path.stat().st_mode) == 0o600

    def test_invalid_toml_raises_config_error(self, mock_config_path):
        mock_config_path.write_text("this is = = not toml")

        with pytest.raises(ConfigError, match="Failed to load config"):
            ConfigManager.load_config()

    def test_update_ignores_none(self, mock_config_path):
        ConfigManager.save_config(AzvmConfig(subscription_id="sub-123"))

        config = ConfigManager.update_config(subscription_id=None, resource_group="rg")

        assert config.subscription_id == "sub-123"
        assert ConfigManager.load_config().resource_group == "rg"

    def test_custom_path(self, tmp_path, mock_config_path):
        custom = tmp_path / "other" / "azvm.toml"

        ConfigManager.update_config(str(custom), vault_name="vault-2")

        assert custom.exists()
        assert not mock_config_path.exists()
        assert ConfigManager.load_config(str(custom)).vault_name == "vault-2"


class TestResolution:
    """Test CLI value > config > error resolution."""

    def test_cli_value_wins(self, mock_config_path):
        ConfigManager.save_config(AzvmConfig(subscription_id="from-config"))

        assert ConfigManager.get_subscription_id("from-cli") == "from-cli"

    def test_config_value_used(self, mock_config_path):
        ConfigManager.save_config(AzvmConfig(subscription_id="from-config"))

        assert ConfigManager.get_subscription_id() == "from-config"

    def test_missing_values_raise(self, mock_config_path):
        with pytest.raises(NoSubscriptionError, match="No subscription specified"):
            ConfigManager.get_subscription_id()
        with pytest.raises(NoResourceGroupError, match="No resource group specified"):
            ConfigManager.get_resource_group()
        with pytest.raises(NoVaultError, match="No vault name specified"):
            ConfigManager.get_vault_name()

    def test_vault_group_falls_back_to_resource_group(self, mock_config_path):
        assert ConfigManager.get_vault_resource_group(None, "rg-vms") == "rg-vms"

    def test_resolve_vault_scope(self, mock_config_path):
        ConfigManager.save_config(
            AzvmConfig(
                subscription_id="sub-123",
                resource_group="rg-vms",
                vault_resource_group="rg-vault",
                vault_name="vault-1",
            )
        )

        scope = ConfigManager.resolve_vault_scope(vault_name="vault-override")

        assert scope.subscription_id == "sub-123"
        assert scope.resource_group == "rg-vms"
        assert scope.vault_resource_group == "rg-vault"
        assert scope.vault_name == "vault-override"
