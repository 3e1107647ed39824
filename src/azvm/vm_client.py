"""Virtual machine operations against the Microsoft.Compute provider.

Reads (get, list, instance view) and power actions (start, deallocate)
for VMs in a resource group. Power actions return the raw submission
response; waiting for the VMs to actually change state is done by
VMLifecycleController through StatePollTracker.
"""

import logging

from azvm.arm_client import ArmClient, ArmResponse
from azvm.models import VirtualMachine
from azvm.state_tracker import power_state_from_statuses

logger = logging.getLogger(__name__)

COMPUTE_API_VERSION = "2023-03-01"


def vm_path(subscription_id: str, resource_group: str, vm_name: str | None = None) -> str:
    """Build the ARM path for a VM (or the VM collection when vm_name is None)."""
    path = (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Compute/virtualMachines"
    )
    if vm_name:
        path = f"{path}/{vm_name}"
    return path


class VMClient:
    """Query and control Azure VMs."""

    def __init__(self, arm: ArmClient):
        self.arm = arm

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_vm(self, vm_name: str, resource_group: str, subscription_id: str) -> VirtualMachine:
        data = self.arm.get_json(
            vm_path(subscription_id, resource_group, vm_name), COMPUTE_API_VERSION
        )
        return VirtualMachine.from_dict(data)

    def get_instance_view(
        self, vm_name: str, resource_group: str, subscription_id: str
    ) -> dict:
        return self.arm.get_json(
            f"{vm_path(subscription_id, resource_group, vm_name)}/instanceView",
            COMPUTE_API_VERSION,
        )

    def get_power_state(self, vm_name: str, resource_group: str, subscription_id: str) -> str:
        """Return the VM's power state display text (e.g. "VM running")."""
        view = self.get_instance_view(vm_name, resource_group, subscription_id)
        return power_state_from_statuses(view.get("statuses"))

    def get_vm_with_instance_view(
        self, vm_name: str, resource_group: str, subscription_id: str
    ) -> VirtualMachine:
        vm = self.get_vm(vm_name, resource_group, subscription_id)
        view = self.get_instance_view(vm_name, resource_group, subscription_id)
        return vm.with_instance_view(view)

    def list_vms(self, resource_group: str, subscription_id: str) -> list[VirtualMachine]:
        items = self.arm.list_values(vm_path(subscription_id, resource_group), COMPUTE_API_VERSION)
        return [VirtualMachine.from_dict(item) for item in items]

    def list_vm_names(self, resource_group: str, subscription_id: str) -> list[str]:
        return [vm.name for vm in self.list_vms(resource_group, subscription_id) if vm.name]

    def list_all_vms(self, subscription_id: str) -> list[VirtualMachine]:
        """List every VM in the subscription, with power state."""
        items = self.arm.list_values(
            f"/subscriptions/{subscription_id}/providers/Microsoft.Compute/virtualMachines",
            COMPUTE_API_VERSION,
            params={"statusOnly": "true"},
        )
        return [VirtualMachine.from_dict(item) for item in items]

    def list_vms_with_instance_view(
        self, resource_group: str, subscription_id: str
    ) -> list[VirtualMachine]:
        vms = self.list_vms(resource_group, subscription_id)
        for vm in vms:
            if not vm.name:
                continue
            view = self.get_instance_view(vm.name, resource_group, subscription_id)
            vm.with_instance_view(view)
        return vms

    # ------------------------------------------------------------------
    # Power actions
    # ------------------------------------------------------------------

    def start_vm(self, vm_name: str, resource_group: str, subscription_id: str) -> ArmResponse:
        logger.debug(f"Submitting start for {vm_name}")
        return self.arm.post(
            f"{vm_path(subscription_id, resource_group, vm_name)}/start", COMPUTE_API_VERSION
        )

    def deallocate_vm(
        self, vm_name: str, resource_group: str, subscription_id: str
    ) -> ArmResponse:
        logger.debug(f"Submitting deallocate for {vm_name}")
        return self.arm.post(
            f"{vm_path(subscription_id, resource_group, vm_name)}/deallocate",
            COMPUTE_API_VERSION,
        )


__all__ = ["COMPUTE_API_VERSION", "VMClient", "vm_path"]
