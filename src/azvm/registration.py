"""Batch registration of VMs for backup protection.

For each selected VM, strictly one at a time:

    submit -> locate operation -> poll to terminal status -> record outcome

A terminal status other than Succeeded (Failed, Canceled, Invalid or an
unrecognized value) is recorded and the batch moves on to the next VM.
A failure before an operation handle exists (the submission itself, or
locating the handle in its response) is not isolated: it propagates and
the remaining VMs are not processed. Transport errors while polling also
propagate.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from azvm.backup_client import BackupClient
from azvm.lro_poller import LroPoller
from azvm.models import ResourceRef, VaultScope, VirtualMachine
from azvm.operation_locator import DEFAULT_RETRY_AFTER, locate_operation
from azvm.operation_status import OperationStatus
from azvm.state_tracker import ProgressCallback

logger = logging.getLogger(__name__)

PROGRESS_LABEL = "Protected"


@dataclass(frozen=True)
class RegistrationOutcome:
    """Terminal result of registering one VM."""

    resource: ResourceRef
    status: OperationStatus
    result: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status.succeeded

    @property
    def error(self) -> Exception | None:
        """UnrecognizedTerminalStatus for unknown statuses, else None."""
        return self.status.unknown_error()

    def __repr__(self) -> str:
        state = "SUCCEEDED" if self.succeeded else "FAILED"
        return f"[{state}] {self.resource.name}: {self.status}"


@dataclass
class RegistrationSummary:
    """Outcomes of a registration batch."""

    total: int
    outcomes: list[RegistrationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.total

    def get_failed(self) -> list[RegistrationOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def format_summary(self) -> str:
        return f"{self.succeeded}/{self.total} succeeded"


def select_vms(
    vms: Iterable[VirtualMachine], names: Sequence[str] | None = None
) -> list[VirtualMachine]:
    """Select VMs to register.

    Args:
        vms: All VMs in the scope
        names: Optional allow-list of VM names (empty or None selects all)

    Returns:
        Matching VMs that have both a name and an id, in listing order
    """
    allowed = set(names or [])
    selected = []
    for vm in vms:
        if allowed and vm.name not in allowed:
            continue
        if vm.to_ref() is None:
            logger.debug(f"Skipping VM without name or id: {vm!r}")
            continue
        selected.append(vm)
    return selected


class BatchRegistrationOrchestrator:
    """Register VMs for backup protection one at a time."""

    def __init__(
        self,
        backup: BackupClient,
        poller: LroPoller | None = None,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
    ):
        """Initialize orchestrator.

        Args:
            backup: Recovery Services client used for submit/status/result calls
            poller: Poller driving each operation (default: LroPoller())
            default_retry_after: First-poll delay when Retry-After is missing
        """
        self.backup = backup
        self.poller = poller or LroPoller()
        self.default_retry_after = default_retry_after

    def refresh_vault(self, scope: VaultScope) -> None:
        """Refresh the vault's containers and wait for the refresh to finish.

        Raises:
            OperationHandleError: Refresh response has no usable handle
            TransportError: Submission or polling failed
        """
        response = self.backup.refresh_containers(scope)
        handle = locate_operation(response.headers, self.default_retry_after)
        logger.info(f"Waiting for refresh of vault '{scope.vault_name}'")
        self.poller.wait_for_no_content(
            handle, lambda: self.backup.get_refresh_status_code(scope, handle.id)
        )

    def register(self, scope: VaultScope, vm: VirtualMachine) -> RegistrationOutcome:
        """Register a single VM and wait for the operation to finish.

        Raises:
            OperationHandleError: Submission response has no usable handle
            TransportError: Submission or polling failed
        """
        ref = vm.to_ref()
        if ref is None:
            raise ValueError("VM must have a name and an id to be registered")

        response = self.backup.protect_vm(scope, vm)
        handle = locate_operation(response.headers, self.default_retry_after)

        status = self.poller.poll(
            handle,
            lambda: self.backup.get_protection_status(scope, ref.name, handle.id),
        )

        result = None
        if status.succeeded:
            result = self.backup.get_protection_result(scope, ref.name, handle.id)
            logger.info(f"Protected '{ref.name}'")
        elif status.is_unknown:
            logger.warning(f"'{ref.name}': {status.unknown_error()}")
        else:
            logger.warning(f"Protection of '{ref.name}' ended with status {status}")

        return RegistrationOutcome(resource=ref, status=status, result=result)

    def run(
        self,
        scope: VaultScope,
        vms: Iterable[VirtualMachine],
        names: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RegistrationSummary:
        """Register every selected VM, isolating per-VM terminal failures.

        Args:
            scope: Vault scope
            vms: All VMs in the resource group
            names: Optional allow-list of VM names
            on_progress: Called as (succeeded, total, "Protected") before the
                first VM and after each VM

        Returns:
            RegistrationSummary with one outcome per VM that reached a terminal status
        """
        selected = select_vms(vms, names)
        summary = RegistrationSummary(total=len(selected))

        if on_progress:
            on_progress(0, summary.total, PROGRESS_LABEL)

        for vm in selected:
            outcome = self.register(scope, vm)
            summary.outcomes.append(outcome)

            if on_progress:
                on_progress(summary.succeeded, summary.total, PROGRESS_LABEL)

        logger.info(f"Backup registration finished: {summary.format_summary()}")
        return summary


__all__ = [
    "BatchRegistrationOrchestrator",
    "RegistrationOutcome",
    "RegistrationSummary",
    "select_vms",
]
