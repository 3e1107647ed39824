"""Table rendering for subscriptions, resource groups, VMs and backup results."""

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from azvm.models import ResourceGroup, Subscription, VirtualMachine
from azvm.registration import RegistrationSummary

VM_STATUS_STYLES = {
    "VM deallocated": "black on red",
    "VM deallocating": "black on yellow",
    "VM starting": "black on yellow",
    "VM running": "black on green",
}


def vm_status_style(status: str) -> str:
    return VM_STATUS_STYLES.get(status, "")


def subscription_table(subscriptions: Sequence[Subscription]) -> Table:
    table = Table(show_header=True, header_style="bold", border_style="green")
    table.add_column("Subscription ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("State")

    for sub in subscriptions:
        table.add_row(sub.subscription_id, sub.display_name, sub.state)
    return table


def resource_group_table(groups: Sequence[ResourceGroup]) -> Table:
    table = Table(show_header=True, header_style="bold", border_style="green")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Location")
    table.add_column("Provisioning State")

    for group in groups:
        table.add_row(group.name, group.location, group.provisioning_state)
    return table


def vm_table(vms: Sequence[VirtualMachine]) -> Table:
    table = Table(show_header=True, header_style="bold", border_style="green")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Location")
    table.add_column("OS")
    table.add_column("SKU")
    table.add_column("Version")
    table.add_column("Status")

    for vm in vms:
        style = vm_status_style(vm.power_state)
        status = escape(vm.power_state)
        if style:
            status = f"[{style}]{status}[/]"
        table.add_row(vm.name or "", vm.location, vm.offer, vm.sku, vm.version, status)
    return table


def registration_table(summary: RegistrationSummary) -> Table:
    table = Table(
        title=f"Backup registration ({summary.format_summary()})",
        show_header=True,
        header_style="bold",
        border_style="green",
    )
    table.add_column("VM", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Protection State")

    for outcome in summary.outcomes:
        style = "green" if outcome.succeeded else "red"
        protection_state = ""
        if outcome.result:
            protection_state = (outcome.result.get("properties") or {}).get(
                "protectionState", ""
            )
        table.add_row(
            outcome.resource.name,
            f"[{style}]{escape(str(outcome.status))}[/{style}]",
            protection_state,
        )
    return table


def print_table(table: Table, console: Console | None = None) -> None:
    (console or Console()).print(table)


__all__ = [
    "print_table",
    "registration_table",
    "resource_group_table",
    "subscription_table",
    "vm_status_style",
    "vm_table",
]
