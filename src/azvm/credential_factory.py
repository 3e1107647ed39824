"""Credential factory for Azure authentication.

Creates Azure Identity SDK credential objects for the ARM transport.

Supported methods:
- azure_cli: Delegate to the Azure CLI login (default)
- sp_secret: Service principal; secret read from AZURE_CLIENT_SECRET only
- managed_identity: System- or user-assigned managed identity

The method can be chosen with AZVM_AUTH_METHOD or the CLI --auth option.
"""

import os
from enum import Enum
from typing import Any

from azure.identity import AzureCliCredential, ClientSecretCredential, ManagedIdentityCredential

from azvm.exceptions import CredentialError
from azvm.retry_handler import safe_error_message

TEST_MODE_ENV_VAR = "AZVM_TEST_MODE"


class AuthMethod(str, Enum):
    """Authentication method."""

    AZURE_CLI = "azure_cli"
    SERVICE_PRINCIPAL_SECRET = "sp_secret"  # noqa: S105 - Enum value, not a password
    MANAGED_IDENTITY = "managed_identity"


def auth_method_from_environment() -> AuthMethod:
    value = os.getenv("AZVM_AUTH_METHOD", AuthMethod.AZURE_CLI.value)
    try:
        return AuthMethod(value)
    except ValueError as e:
        raise CredentialError(f"Unsupported authentication method: {value}") from e


class CredentialFactory:
    """Create Azure Identity credentials."""

    @staticmethod
    def create_credential(method: AuthMethod | None = None) -> Any:
        """Create a TokenCredential.

        Args:
            method: Authentication method (default: from AZVM_AUTH_METHOD)

        Returns:
            Azure Identity credential object

        Raises:
            CredentialError: If the credential cannot be created, or AZVM_TEST_MODE is set
        """
        if os.getenv(TEST_MODE_ENV_VAR) == "true":
            raise CredentialError(
                f"Azure credentials are disabled while {TEST_MODE_ENV_VAR} is set"
            )

        method = method or auth_method_from_environment()

        try:
            if method == AuthMethod.AZURE_CLI:
                return AzureCliCredential()

            if method == AuthMethod.SERVICE_PRINCIPAL_SECRET:
                return CredentialFactory._create_sp_secret_credential()

            if method == AuthMethod.MANAGED_IDENTITY:
                client_id = os.getenv("AZURE_CLIENT_ID")
                if client_id:
                    return ManagedIdentityCredential(client_id=client_id)
                return ManagedIdentityCredential()

        except CredentialError:
            raise
        except Exception as e:
            raise CredentialError(
                f"Credential creation failed: {safe_error_message(e)}"
            ) from e

        raise CredentialError(f"Unsupported authentication method: {method}")

    @staticmethod
    def _create_sp_secret_credential() -> ClientSecretCredential:
        """Create service principal credential from environment variables.

        Requires AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET.
        """
        tenant_id = os.getenv("AZURE_TENANT_ID")
        client_id = os.getenv("AZURE_CLIENT_ID")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")

        missing = [
            name
            for name, value in (
                ("AZURE_TENANT_ID", tenant_id),
                ("AZURE_CLIENT_ID", client_id),
                ("AZURE_CLIENT_SECRET", client_secret),
            )
            if not value
        ]
        if missing:
            raise CredentialError(
                f"Service principal authentication requires: {', '.join(missing)}"
            )

        return ClientSecretCredential(
            tenant_id=tenant_id,  # type: ignore[arg-type]
            client_id=client_id,  # type: ignore[arg-type]
            client_secret=client_secret,  # type: ignore[arg-type]
        )


__all__ = ["TEST_MODE_ENV_VAR", "AuthMethod", "CredentialFactory", "auth_method_from_environment"]
