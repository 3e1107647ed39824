"""VM lifecycle control for batch start/stop operations.

This module starts or deallocates a batch of VMs and waits until every VM
reports the matching power state:
- Submit the power action for each VM, one after another
- Converge the batch with StatePollTracker ("VM running" / "VM deallocated")
- Report progress as (completed, total, label) after every round
- List the resource group's VMs once the batch has converged
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from azvm.models import VirtualMachine
from azvm.state_tracker import (
    DEFAULT_POLL_INTERVAL,
    VM_DEALLOCATED,
    VM_RUNNING,
    ProgressCallback,
    StatePollTracker,
    TargetState,
)
from azvm.vm_client import VMClient

logger = logging.getLogger(__name__)


class VmCommand(Enum):
    """Power actions that can be applied to a batch of VMs."""

    START = "start"
    STOP = "stop"

    @property
    def target(self) -> TargetState:
        return VM_RUNNING if self is VmCommand.START else VM_DEALLOCATED

    @property
    def label(self) -> str:
        """Progress label shown as '<label> N/total virtual machines...'."""
        return "Started" if self is VmCommand.START else "Stopped"


@dataclass
class LifecycleSummary:
    """Summary of a converged batch lifecycle operation."""

    operation: VmCommand
    total: int
    converged: list[str]
    rounds: int
    vms: list[VirtualMachine] = field(default_factory=list)

    def format_summary(self) -> str:
        return f"{self.operation.label} {len(self.converged)}/{self.total} virtual machines"


class VMLifecycleController:
    """Start or deallocate VMs and wait for their power state to converge."""

    def __init__(
        self,
        vm_client: VMClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.vm_client = vm_client
        self.poll_interval = poll_interval
        self._sleep = sleep

    def submit(
        self,
        vm_names: Sequence[str],
        resource_group: str,
        subscription_id: str,
        command: VmCommand,
    ) -> None:
        """Submit the power action for every VM, in order.

        Raises:
            TransportError: On the first failed submission (later VMs are not submitted)
        """
        action = (
            self.vm_client.start_vm if command is VmCommand.START else self.vm_client.deallocate_vm
        )
        for vm_name in vm_names:
            logger.info(f"Sending {command.value} to '{vm_name}'")
            action(vm_name, resource_group, subscription_id)

    def run(
        self,
        command: VmCommand,
        resource_group: str,
        subscription_id: str,
        vm_names: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LifecycleSummary:
        """Apply a power action to a batch of VMs and wait for convergence.

        Args:
            command: START or STOP
            resource_group: Resource group of the VMs
            subscription_id: Subscription of the VMs
            vm_names: VMs to act on (None or empty means every VM in the group)
            on_progress: Called as (completed, total, label)

        Returns:
            LifecycleSummary including the group's VMs after convergence
        """
        if not vm_names:
            vm_names = self.vm_client.list_vm_names(resource_group, subscription_id)
        names = list(dict.fromkeys(vm_names))

        self.submit(names, resource_group, subscription_id, command)

        if on_progress:
            on_progress(0, len(names), command.label)

        tracker = StatePollTracker(
            query=lambda name: self.vm_client.get_power_state(
                name, resource_group, subscription_id
            ),
            target=command.target,
            interval=self.poll_interval,
            sleep=self._sleep,
        )
        convergence = tracker.converge(names, on_progress=on_progress, label=command.label)

        vms = self.vm_client.list_vms_with_instance_view(resource_group, subscription_id)

        return LifecycleSummary(
            operation=command,
            total=convergence.total,
            converged=convergence.done,
            rounds=convergence.rounds,
            vms=vms,
        )

    def start_vms(
        self,
        resource_group: str,
        subscription_id: str,
        vm_names: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LifecycleSummary:
        return self.run(VmCommand.START, resource_group, subscription_id, vm_names, on_progress)

    def stop_vms(
        self,
        resource_group: str,
        subscription_id: str,
        vm_names: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LifecycleSummary:
        return self.run(VmCommand.STOP, resource_group, subscription_id, vm_names, on_progress)


__all__ = ["LifecycleSummary", "VMLifecycleController", "VmCommand"]
