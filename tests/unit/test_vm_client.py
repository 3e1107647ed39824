"""Unit tests for vm_client and the resource models."""

from azvm.models import ResourceGroup, Subscription, VirtualMachine
from azvm.resource_client import RESOURCES_API_VERSION, SUBSCRIPTIONS_API_VERSION, ResourceClient
from azvm.vm_client import COMPUTE_API_VERSION, VMClient, vm_path
from tests.utils import instance_view, make_response, vm_payload

VMS = "/subscriptions/sub-123/resourceGroups/rg-vms/providers/Microsoft.Compute/virtualMachines"


class TestVirtualMachineModel:
    """Test VirtualMachine parsing."""

    def test_from_dict(self):
        vm = VirtualMachine.from_dict(vm_payload(name="vm-a", power_state="VM running"))

        assert vm.name == "vm-a"
        assert vm.id.endswith("/virtualMachines/vm-a")
        assert vm.location == "westeurope"
        assert vm.offer == "0001-com-ubuntu-server-jammy"
        assert vm.sku == "22_04-lts-gen2"
        assert vm.version == "latest"
        assert vm.power_state == "VM running"

    def test_from_dict_without_instance_view(self):
        vm = VirtualMachine.from_dict({"name": "vm-a"})

        assert vm.power_state == "Unknown"
        assert vm.id is None
        assert vm.to_ref() is None

    def test_with_instance_view(self):
        vm = VirtualMachine.from_dict(vm_payload(name="vm-a"))

        assert vm.with_instance_view(instance_view("VM deallocated")) is vm
        assert vm.power_state == "VM deallocated"

    def test_to_ref(self):
        ref = VirtualMachine.from_dict(vm_payload(name="vm-a")).to_ref()

        assert ref.name == "vm-a"
        assert ref.id == f"{VMS}/vm-a"


class TestResourceModels:
    def test_subscription_from_dict(self):
        sub = Subscription.from_dict(
            {"subscriptionId": "sub-123", "displayName": "Dev", "state": "Enabled"}
        )

        assert sub == Subscription("sub-123", "Dev", "Enabled")

    def test_resource_group_from_dict(self):
        group = ResourceGroup.from_dict(
            {"name": "rg", "location": "westeurope", "properties": {"provisioningState": "Succeeded"}}
        )

        assert group == ResourceGroup("rg", "westeurope", "Succeeded")


class TestVMClient:
    """Test VMClient requests."""

    def test_vm_path(self):
        assert vm_path("sub-123", "rg-vms") == VMS
        assert vm_path("sub-123", "rg-vms", "vm-a") == f"{VMS}/vm-a"

    def test_get_power_state(self, mock_arm):
        mock_arm.get_json.return_value = instance_view("VM starting")

        state = VMClient(mock_arm).get_power_state("vm-a", "rg-vms", "sub-123")

        assert state == "VM starting"
        mock_arm.get_json.assert_called_once_with(f"{VMS}/vm-a/instanceView", COMPUTE_API_VERSION)

    def test_get_vm_with_instance_view(self, mock_arm):
        mock_arm.get_json.side_effect = [vm_payload(name="vm-a"), instance_view("VM running")]

        vm = VMClient(mock_arm).get_vm_with_instance_view("vm-a", "rg-vms", "sub-123")

        assert vm.name == "vm-a"
        assert vm.power_state == "VM running"

    def test_list_vm_names_skips_nameless(self, mock_arm):
        mock_arm.list_values.return_value = [vm_payload(name="vm-a"), {"id": "/x"}]

        assert VMClient(mock_arm).list_vm_names("rg-vms", "sub-123") == ["vm-a"]
        mock_arm.list_values.assert_called_once_with(VMS, COMPUTE_API_VERSION)

    def test_list_all_vms_requests_status(self, mock_arm):
        mock_arm.list_values.return_value = [vm_payload(name="vm-a", power_state="VM running")]

        vms = VMClient(mock_arm).list_all_vms("sub-123")

        assert vms[0].power_state == "VM running"
        mock_arm.list_values.assert_called_once_with(
            "/subscriptions/sub-123/providers/Microsoft.Compute/virtualMachines",
            COMPUTE_API_VERSION,
            params={"statusOnly": "true"},
        )

    def test_list_vms_with_instance_view(self, mock_arm):
        mock_arm.list_values.return_value = [vm_payload(name="vm-a"), vm_payload(name="vm-b")]
        mock_arm.get_json.side_effect = [instance_view("VM running"), instance_view("VM deallocated")]

        vms = VMClient(mock_arm).list_vms_with_instance_view("rg-vms", "sub-123")

        assert [(vm.name, vm.power_state) for vm in vms] == [
            ("vm-a", "VM running"),
            ("vm-b", "VM deallocated"),
        ]

    def test_start_vm(self, mock_arm):
        mock_arm.post.return_value = make_response(202)

        VMClient(mock_arm).start_vm("vm-a", "rg-vms", "sub-123")

        mock_arm.post.assert_called_once_with(f"{VMS}/vm-a/start", COMPUTE_API_VERSION)

    def test_deallocate_vm(self, mock_arm):
        mock_arm.post.return_value = make_response(202)

        VMClient(mock_arm).deallocate_vm("vm-a", "rg-vms", "sub-123")

        mock_arm.post.assert_called_once_with(f"{VMS}/vm-a/deallocate", COMPUTE_API_VERSION)


class TestResourceClient:
    def test_list_subscriptions(self, mock_arm):
        mock_arm.list_values.return_value = [{"subscriptionId": "a"}, {"subscriptionId": "b"}]

        subs = ResourceClient(mock_arm).list_subscriptions()

        assert [s.subscription_id for s in subs] == ["a", "b"]
        mock_arm.list_values.assert_called_once_with("/subscriptions", SUBSCRIPTIONS_API_VERSION)

    def test_get_resource_group(self, mock_arm):
        mock_arm.get_json.return_value = {"name": "rg-vms", "location": "westeurope"}

        group = ResourceClient(mock_arm).get_resource_group("rg-vms", "sub-123")

        assert group.name == "rg-vms"
        mock_arm.get_json.assert_called_once_with(
            "/subscriptions/sub-123/resourcegroups/rg-vms", RESOURCES_API_VERSION
        )
