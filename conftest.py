"""Pytest configuration and fixtures for azvm tests.

CRITICAL: Protects production configuration from test modifications.
"""

import os
import shutil
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.azvm/config.toml from being modified by tests.

    This fixture:
    1. Backs up the real config.toml before any tests run
    2. Restores it after all tests complete
    """
    config_path = Path.home() / ".azvm" / "config.toml"
    backup_path = Path.home() / ".azvm" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)
        print(f"\n[PYTEST] Protected config.toml - backup at {backup_path}")

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
        print("\n[PYTEST] Restored config.toml from backup")
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(scope="session", autouse=True)
def prevent_real_azure_operations():
    """Mark test mode so nothing reaches real Azure by accident.

    CredentialFactory refuses to build a credential while AZVM_TEST_MODE is
    set, so only tests that inject a fake credential can reach ArmClient.
    """
    os.environ["AZVM_TEST_MODE"] = "true"

    yield

    if "AZVM_TEST_MODE" in os.environ:
        del os.environ["AZVM_TEST_MODE"]


@pytest.fixture
def isolated_config(tmp_path):
    """Provide isolated config directory for tests.

    Use this fixture instead of modifying ~/.azvm/config.toml.
    """
    config_dir = tmp_path / ".azvm"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def mock_config_path(isolated_config, monkeypatch):
    """Point ConfigManager at an isolated config file instead of ~/.azvm.

    Example:
        def test_something(mock_config_path):
            ConfigManager.save_config(config)  # Safe!
    """
    config_file = isolated_config / "config.toml"

    from azvm.config_manager import ConfigManager

    def mock_get_path(custom_path=None):
        if custom_path:
            return Path(custom_path)
        return config_file

    monkeypatch.setattr(ConfigManager, "get_config_path", mock_get_path)
    monkeypatch.delenv("AZVM_CONFIG", raising=False)

    return config_file
