"""Unit tests for backup_client module."""

from azvm.backup_client import (
    RECOVERY_SERVICES_API_VERSION,
    BackupClient,
    build_protected_item_body,
    container_name,
    default_policy_id,
    protected_item_name,
)
from azvm.models import VirtualMachine
from azvm.operation_status import OperationState
from tests.utils import make_response, vm_payload

VAULT = "/subscriptions/sub-123/resourceGroups/rg-vault/providers/Microsoft.RecoveryServices/vaults/vault-1"
ITEM = (
    f"{VAULT}/backupFabrics/Azure"
    "/protectionContainers/iaasvmcontainer;iaasvmcontainerv2;rg-vms;vm-a"
    "/protectedItems/vm;iaasvmcontainerv2;rg-vms;vm-a"
)


class TestNaming:
    """Test provider naming scheme."""

    def test_container_name(self):
        assert container_name("rg", "vm1") == "iaasvmcontainer;iaasvmcontainerv2;rg;vm1"

    def test_protected_item_name(self):
        assert protected_item_name("rg", "vm1") == "vm;iaasvmcontainerv2;rg;vm1"

    def test_default_policy_id(self):
        assert default_policy_id("sub-123", "rg-vault", "vault-1") == (
            "/subscriptions/sub-123/resourceGroups/rg-vault"
            "/providers/microsoft.recoveryservices/vaults/vault-1/backupPolicies/DefaultPolicy"
        )


class TestBuildProtectedItemBody:
    def test_body(self, vault_scope):
        vm = VirtualMachine.from_dict(vm_payload(name="vm-a", tags={"env": "dev"}))

        body = build_protected_item_body(vault_scope, vm)

        properties = body["properties"]
        assert properties["protectedItemType"] == "Microsoft.Compute/virtualMachines"
        assert properties["backupManagementType"] == "AzureIaasVM"
        assert properties["workloadType"] == "VM"
        assert properties["containerName"] == "iaasvmcontainer;iaasvmcontainerv2;rg-vms;vm-a"
        assert properties["sourceResourceId"] == vm.id
        assert properties["policyId"].endswith(
            "/resourceGroups/rg-vault/providers/microsoft.recoveryservices"
            "/vaults/vault-1/backupPolicies/DefaultPolicy"
        )
        assert properties["policyName"] == "DefaultPolicy"
        assert body["location"] == "westeurope"
        assert body["tags"] == {"env": "dev"}

    def test_body_without_location_or_tags(self, vault_scope):
        vm = VirtualMachine(name="vm-a", id="/x/vm-a")

        body = build_protected_item_body(vault_scope, vm)

        assert "location" not in body
        assert "tags" not in body


class TestBackupClient:
    """Test BackupClient requests."""

    def test_refresh_containers(self, mock_arm, vault_scope):
        mock_arm.post.return_value = make_response(202)

        BackupClient(mock_arm).refresh_containers(vault_scope)

        mock_arm.post.assert_called_once_with(
            f"{VAULT}/backupFabrics/Azure/refreshContainers", RECOVERY_SERVICES_API_VERSION
        )

    def test_get_refresh_status_code(self, mock_arm, vault_scope):
        mock_arm.get.return_value = make_response(204)

        code = BackupClient(mock_arm).get_refresh_status_code(vault_scope, "op-9")

        assert code == 204
        mock_arm.get.assert_called_once_with(
            f"{VAULT}/backupFabrics/Azure/operationResults/op-9", RECOVERY_SERVICES_API_VERSION
        )

    def test_protect_vm(self, mock_arm, vault_scope):
        vm = VirtualMachine.from_dict(vm_payload(name="vm-a"))
        mock_arm.put.return_value = make_response(202)

        BackupClient(mock_arm).protect_vm(vault_scope, vm)

        path, api_version, body = mock_arm.put.call_args.args
        assert path == ITEM
        assert api_version == RECOVERY_SERVICES_API_VERSION
        assert body == build_protected_item_body(vault_scope, vm)

    def test_get_protection_status(self, mock_arm, vault_scope):
        mock_arm.get_json.return_value = {"id": "op-1", "status": "InProgress"}

        status = BackupClient(mock_arm).get_protection_status(vault_scope, "vm-a", "op-1")

        assert status.state == OperationState.IN_PROGRESS
        mock_arm.get_json.assert_called_once_with(
            f"{ITEM}/operationsStatus/op-1", RECOVERY_SERVICES_API_VERSION
        )

    def test_get_protection_status_without_status(self, mock_arm, vault_scope):
        mock_arm.get_json.return_value = {}

        assert BackupClient(mock_arm).get_protection_status(vault_scope, "vm-a", "op-1") is None

    def test_get_protection_result(self, mock_arm, vault_scope):
        mock_arm.get.return_value = make_response(200, body={"properties": {"protectionState": "IRPending"}})

        result = BackupClient(mock_arm).get_protection_result(vault_scope, "vm-a", "op-1")

        assert result == {"properties": {"protectionState": "IRPending"}}
        mock_arm.get.assert_called_once_with(
            f"{ITEM}/operationResults/op-1", RECOVERY_SERVICES_API_VERSION
        )

    def test_get_protection_result_no_content(self, mock_arm, vault_scope):
        mock_arm.get.return_value = make_response(204)

        assert BackupClient(mock_arm).get_protection_result(vault_scope, "vm-a", "op-1") is None
