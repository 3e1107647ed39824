"""
Shared test fixtures for azvm tests.

This module provides common fixtures used across test modules:
- Fake Azure credential
- Mocked ArmClient
- Vault scope for backup tests
- A recording sleep so polling tests never wait
"""

from unittest.mock import Mock

import pytest

from azvm.arm_client import ArmClient
from azvm.models import VaultScope
from tests.utils import RecordingSleep

# ============================================================================
# AZURE FIXTURES
# ============================================================================


@pytest.fixture
def mock_credential():
    """Fake TokenCredential returning a static token."""
    credential = Mock()
    credential.get_token.return_value = Mock(
        token="fake-azure-token-12345",  # noqa: S106 - test fixture, not a real credential
        expires_on=9999999999,
    )
    return credential


@pytest.fixture
def mock_arm():
    """ArmClient mock with the transport's public surface."""
    return Mock(spec=ArmClient)


@pytest.fixture
def vault_scope():
    return VaultScope(
        subscription_id="sub-123",
        resource_group="rg-vms",
        vault_name="vault-1",
        vault_resource_group="rg-vault",
    )


# ============================================================================
# POLLING FIXTURES
# ============================================================================


@pytest.fixture
def fake_sleep():
    """Recording replacement for time.sleep."""
    return RecordingSleep()
