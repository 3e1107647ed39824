"""Data models for Azure resources used by azvm.

Only the fields azvm reads are modelled; the raw ARM payload is kept on
each record for display and for building request bodies.
"""

from dataclasses import dataclass, field
from typing import Any

from azvm.state_tracker import UNKNOWN_POWER_STATE, power_state_from_statuses


@dataclass(frozen=True)
class ResourceRef:
    """Minimal identity of a resource across submit/poll/list calls."""

    id: str
    name: str


@dataclass
class Subscription:
    """Azure subscription summary."""

    subscription_id: str
    display_name: str = ""
    state: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subscription":
        return cls(
            subscription_id=data.get("subscriptionId", ""),
            display_name=data.get("displayName", ""),
            state=data.get("state", ""),
        )


@dataclass
class ResourceGroup:
    """Azure resource group summary."""

    name: str
    location: str = ""
    provisioning_state: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceGroup":
        return cls(
            name=data.get("name", ""),
            location=data.get("location", ""),
            provisioning_state=(data.get("properties") or {}).get("provisioningState", ""),
        )


@dataclass
class VirtualMachine:
    """Azure virtual machine with optional instance view."""

    name: str | None
    id: str | None
    location: str = ""
    offer: str = ""
    sku: str = ""
    version: str = ""
    power_state: str = UNKNOWN_POWER_STATE
    tags: dict[str, str] = field(default_factory=dict)
    vm_type: str = "Microsoft.Compute/virtualMachines"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VirtualMachine":
        """Build from an ARM virtualMachines payload.

        The power state is read from ``properties.instanceView`` when the
        payload includes one (``$expand=instanceView`` or ``statusOnly``).
        """
        properties = data.get("properties") or {}
        image = (properties.get("storageProfile") or {}).get("imageReference") or {}
        instance_view = properties.get("instanceView") or {}

        return cls(
            name=data.get("name"),
            id=data.get("id"),
            location=data.get("location", ""),
            offer=image.get("offer") or "",
            sku=image.get("sku") or "",
            version=image.get("version") or "",
            power_state=power_state_from_statuses(instance_view.get("statuses")),
            tags=data.get("tags") or {},
            vm_type=data.get("type") or "Microsoft.Compute/virtualMachines",
        )

    def with_instance_view(self, instance_view: dict[str, Any]) -> "VirtualMachine":
        """Set the power state from an instance view and return self."""
        self.power_state = power_state_from_statuses(instance_view.get("statuses"))
        return self

    def to_ref(self) -> ResourceRef | None:
        """Return a ResourceRef, or None if the VM has no id or name."""
        if not self.name or not self.id:
            return None
        return ResourceRef(id=self.id, name=self.name)


@dataclass(frozen=True)
class VaultScope:
    """Where VMs live and which Recovery Services vault protects them."""

    subscription_id: str
    resource_group: str
    vault_name: str
    vault_resource_group: str


__all__ = ["ResourceGroup", "ResourceRef", "Subscription", "VaultScope", "VirtualMachine"]
