"""Recovery Services backup operations for Azure IaaS VMs.

Covers the calls needed to register VMs for backup protection:
- Refresh the vault's protection containers (discovers new VMs)
- Create a protected item for a VM under the vault's DefaultPolicy
- Query the protected item operation status and result

Container and protected-item names follow the provider's fixed naming
scheme and must be reproduced exactly.
"""

import logging
from typing import Any

from azvm.arm_client import ArmClient, ArmResponse
from azvm.models import VaultScope, VirtualMachine
from azvm.operation_status import OperationStatus

logger = logging.getLogger(__name__)

RECOVERY_SERVICES_API_VERSION = "2023-04-01"
FABRIC_NAME = "Azure"
DEFAULT_POLICY_NAME = "DefaultPolicy"
BACKUP_MANAGEMENT_TYPE = "AzureIaasVM"
WORKLOAD_TYPE = "VM"
PROTECTED_ITEM_TYPE = "Microsoft.Compute/virtualMachines"


def container_name(resource_group: str, vm_name: str) -> str:
    return f"iaasvmcontainer;iaasvmcontainerv2;{resource_group};{vm_name}"


def protected_item_name(resource_group: str, vm_name: str) -> str:
    return f"vm;iaasvmcontainerv2;{resource_group};{vm_name}"


def default_policy_id(subscription_id: str, vault_resource_group: str, vault_name: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{vault_resource_group}"
        f"/providers/microsoft.recoveryservices/vaults/{vault_name}"
        f"/backupPolicies/{DEFAULT_POLICY_NAME}"
    )


def vault_path(scope: VaultScope) -> str:
    return (
        f"/subscriptions/{scope.subscription_id}/resourceGroups/{scope.vault_resource_group}"
        f"/providers/Microsoft.RecoveryServices/vaults/{scope.vault_name}"
    )


def protected_item_path(scope: VaultScope, vm_name: str) -> str:
    return (
        f"{vault_path(scope)}/backupFabrics/{FABRIC_NAME}"
        f"/protectionContainers/{container_name(scope.resource_group, vm_name)}"
        f"/protectedItems/{protected_item_name(scope.resource_group, vm_name)}"
    )


def build_protected_item_body(scope: VaultScope, vm: VirtualMachine) -> dict[str, Any]:
    """Build the protected item request body for a VM.

    Args:
        scope: Vault scope (policy id is derived from it)
        vm: VM to protect (must have a name and id)

    Returns:
        JSON body for the protected item PUT
    """
    body: dict[str, Any] = {
        "properties": {
            "protectedItemType": PROTECTED_ITEM_TYPE,
            "backupManagementType": BACKUP_MANAGEMENT_TYPE,
            "workloadType": WORKLOAD_TYPE,
            "containerName": container_name(scope.resource_group, vm.name or ""),
            "sourceResourceId": vm.id,
            "policyId": default_policy_id(
                scope.subscription_id, scope.vault_resource_group, scope.vault_name
            ),
            "policyName": DEFAULT_POLICY_NAME,
        }
    }
    if vm.location:
        body["location"] = vm.location
    if vm.tags:
        body["tags"] = dict(vm.tags)
    return body


class BackupClient:
    """Recovery Services vault operations for VM backup."""

    def __init__(self, arm: ArmClient):
        self.arm = arm

    def refresh_containers(self, scope: VaultScope) -> ArmResponse:
        """Ask the vault to rediscover protectable VMs.

        Returns:
            Submission response (operation handle in its headers)
        """
        logger.debug(f"Refreshing containers of vault '{scope.vault_name}'")
        return self.arm.post(
            f"{vault_path(scope)}/backupFabrics/{FABRIC_NAME}/refreshContainers",
            RECOVERY_SERVICES_API_VERSION,
        )

    def get_refresh_status_code(self, scope: VaultScope, operation_id: str) -> int:
        """Return the HTTP status of the refresh operation result (204 when done)."""
        response = self.arm.get(
            f"{vault_path(scope)}/backupFabrics/{FABRIC_NAME}/operationResults/{operation_id}",
            RECOVERY_SERVICES_API_VERSION,
        )
        return response.status_code

    def protect_vm(self, scope: VaultScope, vm: VirtualMachine) -> ArmResponse:
        """Submit backup protection for a VM.

        Returns:
            Submission response (operation handle in its headers)
        """
        logger.debug(f"Submitting protection for '{vm.name}'")
        return self.arm.put(
            protected_item_path(scope, vm.name or ""),
            RECOVERY_SERVICES_API_VERSION,
            build_protected_item_body(scope, vm),
        )

    def get_protection_status(
        self, scope: VaultScope, vm_name: str, operation_id: str
    ) -> OperationStatus | None:
        data = self.arm.get_json(
            f"{protected_item_path(scope, vm_name)}/operationsStatus/{operation_id}",
            RECOVERY_SERVICES_API_VERSION,
        )
        return OperationStatus.parse(data.get("status"))

    def get_protection_result(
        self, scope: VaultScope, vm_name: str, operation_id: str
    ) -> dict[str, Any] | None:
        """Return the protected item produced by the operation, if any."""
        response = self.arm.get(
            f"{protected_item_path(scope, vm_name)}/operationResults/{operation_id}",
            RECOVERY_SERVICES_API_VERSION,
        )
        return response.body if isinstance(response.body, dict) else None


__all__ = [
    "BackupClient",
    "build_protected_item_body",
    "container_name",
    "default_policy_id",
    "protected_item_name",
]
