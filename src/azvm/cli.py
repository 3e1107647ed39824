"""CLI entry point for azvm.

Commands:
    azvm sub get|list
    azvm rg get|list
    azvm vm get|list|list-all|start|stop
    azvm recovery backup

Global flags --set-sub, --set-rg, --set-vault-rg and --set-vault save
defaults to the config file; commands fall back to those defaults when an
option is omitted.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from azvm import __version__
from azvm.arm_client import ArmClient
from azvm.backup_client import BackupClient
from azvm.config_manager import ConfigManager
from azvm.credential_factory import AuthMethod, CredentialFactory
from azvm.display import (
    print_table,
    registration_table,
    resource_group_table,
    subscription_table,
    vm_table,
)
from azvm.exceptions import AzvmError
from azvm.lro_poller import LroPoller
from azvm.registration import BatchRegistrationOrchestrator
from azvm.resource_client import ResourceClient
from azvm.retry_config import get_retry_config
from azvm.vm_client import VMClient
from azvm.vm_lifecycle_control import VMLifecycleController, VmCommand

logger = logging.getLogger(__name__)

console = Console()


def _split_names(
    ctx: click.Context, param: click.Parameter, value: tuple[str, ...]
) -> list[str] | None:
    """Accept both '-n a -n b' and '-n a,b'."""
    names = [name.strip() for item in value for name in item.split(",") if name.strip()]
    return names or None


def _arm_client(ctx: click.Context) -> ArmClient:
    credential = CredentialFactory.create_credential(ctx.obj.get("auth_method"))
    return ArmClient(credential)


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@contextmanager
def _spinner(text: str) -> Iterator[Progress]:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(text, total=None)
        yield progress


def _progress_reporter(progress: Progress):
    """Return a (completed, total, label) callback updating the spinner text."""
    task_id = progress.task_ids[0]

    def report(completed: int, total: int, label: str) -> None:
        progress.update(task_id, description=f"{label} {completed}/{total} virtual machines...")

    return report


# ============================================================================
# MAIN GROUP
# ============================================================================


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["--help", "-h"]})
@click.option("--set-sub", help="Sets the default Azure subscription ID.")
@click.option("--set-rg", help="Sets the default Azure resource group.")
@click.option("--set-vault-rg", help="Sets the vault's default Azure resource group.")
@click.option("--set-vault", help="Sets the default vault name.")
@click.option("--config", "config_path", help="Config file path", type=click.Path())
@click.option(
    "--auth",
    "auth_method",
    type=click.Choice([m.value for m in AuthMethod]),
    help="Authentication method (default: azure_cli or AZVM_AUTH_METHOD)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    set_sub: str | None,
    set_rg: str | None,
    set_vault_rg: str | None,
    set_vault: str | None,
    config_path: str | None,
    auth_method: str | None,
    verbose: bool,
) -> None:
    """azvm - manage Azure VMs and their backup protection.

    \b
    Examples:
        azvm --set-sub <id> --set-rg my-group
        azvm vm list
        azvm vm start -n vm-a,vm-b
        azvm recovery backup --vault-name my-vault
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["auth_method"] = AuthMethod(auth_method) if auth_method else None

    updates = {
        "subscription_id": set_sub,
        "resource_group": set_rg,
        "vault_resource_group": set_vault_rg,
        "vault_name": set_vault,
    }
    if any(value is not None for value in updates.values()):
        try:
            with _spinner("Saving configuration..."):
                ConfigManager.update_config(config_path, **updates)
        except AzvmError as e:
            _fail(e)
        click.echo(f"Saved defaults to {ConfigManager.get_config_path(config_path)}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================


@main.group(name="sub")
def sub_group() -> None:
    """A set of commands for Azure subscriptions."""


@sub_group.command(name="get")
@click.option("--id", "-i", "sub_id", help="Subscription ID (default: configured subscription)")
@click.pass_context
def sub_get(ctx: click.Context, sub_id: str | None) -> None:
    """Display information about a subscription."""
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, ctx.obj["config_path"])
        with _spinner("Loading subscription..."):
            sub = ResourceClient(_arm_client(ctx)).get_subscription(subscription_id)
        print_table(subscription_table([sub]), console)
    except AzvmError as e:
        _fail(e)


@sub_group.command(name="list")
@click.pass_context
def sub_list(ctx: click.Context) -> None:
    """Display information about all subscriptions."""
    try:
        with _spinner("Loading subscriptions..."):
            subs = ResourceClient(_arm_client(ctx)).list_subscriptions()
        print_table(subscription_table(subs), console)
    except AzvmError as e:
        _fail(e)


# ============================================================================
# RESOURCE GROUPS
# ============================================================================


@main.group(name="rg")
def rg_group() -> None:
    """A set of commands for resource groups."""


@rg_group.command(name="get")
@click.option("--group", "-g", help="Resource group")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def rg_get(ctx: click.Context, group: str | None, sub_id: str | None) -> None:
    """Display information about a resource group."""
    config_path = ctx.obj["config_path"]
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, config_path)
        group_name = ConfigManager.get_resource_group(group, config_path)
        with _spinner("Loading resource group..."):
            rg = ResourceClient(_arm_client(ctx)).get_resource_group(group_name, subscription_id)
        print_table(resource_group_table([rg]), console)
    except AzvmError as e:
        _fail(e)


@rg_group.command(name="list")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def rg_list(ctx: click.Context, sub_id: str | None) -> None:
    """Display all resource groups in a subscription."""
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, ctx.obj["config_path"])
        with _spinner("Loading resource groups..."):
            groups = ResourceClient(_arm_client(ctx)).list_resource_groups(subscription_id)
        print_table(resource_group_table(groups), console)
    except AzvmError as e:
        _fail(e)


# ============================================================================
# VIRTUAL MACHINES
# ============================================================================


@main.group(name="vm")
def vm_group() -> None:
    """A set of commands for virtual machines."""


@vm_group.command(name="get")
@click.option("--name", "-n", required=True, help="VM name")
@click.option("--group", "-g", help="Resource group")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def vm_get(ctx: click.Context, name: str, group: str | None, sub_id: str | None) -> None:
    """Display a virtual machine with its power state."""
    config_path = ctx.obj["config_path"]
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, config_path)
        group_name = ConfigManager.get_resource_group(group, config_path)
        with _spinner("Loading virtual machine..."):
            vm = VMClient(_arm_client(ctx)).get_vm_with_instance_view(
                name, group_name, subscription_id
            )
        print_table(vm_table([vm]), console)
    except AzvmError as e:
        _fail(e)


@vm_group.command(name="list")
@click.option("--group", "-g", help="Resource group")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def vm_list(ctx: click.Context, group: str | None, sub_id: str | None) -> None:
    """List virtual machines in a resource group."""
    config_path = ctx.obj["config_path"]
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, config_path)
        group_name = ConfigManager.get_resource_group(group, config_path)
        with _spinner("Loading virtual machines..."):
            vms = VMClient(_arm_client(ctx)).list_vms_with_instance_view(
                group_name, subscription_id
            )
        print_table(vm_table(vms), console)
    except AzvmError as e:
        _fail(e)


@vm_group.command(name="list-all")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def vm_list_all(ctx: click.Context, sub_id: str | None) -> None:
    """List every virtual machine in a subscription."""
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, ctx.obj["config_path"])
        with _spinner("Loading virtual machines..."):
            vms = VMClient(_arm_client(ctx)).list_all_vms(subscription_id)
        print_table(vm_table(vms), console)
    except AzvmError as e:
        _fail(e)


def _run_vm_command(
    ctx: click.Context,
    command: VmCommand,
    names: list[str] | None,
    group: str | None,
    sub_id: str | None,
) -> None:
    config_path = ctx.obj["config_path"]
    try:
        subscription_id = ConfigManager.get_subscription_id(sub_id, config_path)
        group_name = ConfigManager.get_resource_group(group, config_path)

        controller = VMLifecycleController(
            VMClient(_arm_client(ctx)), poll_interval=get_retry_config().vm_poll_interval
        )
        with _spinner(f"Sending {command.value} to virtual machines...") as progress:
            summary = controller.run(
                command,
                group_name,
                subscription_id,
                vm_names=names,
                on_progress=_progress_reporter(progress),
            )

        click.echo(summary.format_summary())
        print_table(vm_table(summary.vms), console)
    except AzvmError as e:
        _fail(e)


@vm_group.command(name="start")
@click.option(
    "--names", "-n", multiple=True, callback=_split_names, help="VM names (default: all)"
)
@click.option("--group", "-g", help="Resource group")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def vm_start(
    ctx: click.Context, names: list[str] | None, group: str | None, sub_id: str | None
) -> None:
    """Start virtual machines and wait until they are running.

    \b
    Examples:
        azvm vm start -n vm-a,vm-b
        azvm vm start -g my-group
    """
    _run_vm_command(ctx, VmCommand.START, names, group, sub_id)


@vm_group.command(name="stop")
@click.option(
    "--names", "-n", multiple=True, callback=_split_names, help="VM names (default: all)"
)
@click.option("--group", "-g", help="Resource group")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.pass_context
def vm_stop(
    ctx: click.Context, names: list[str] | None, group: str | None, sub_id: str | None
) -> None:
    """Deallocate virtual machines and wait until they are deallocated."""
    _run_vm_command(ctx, VmCommand.STOP, names, group, sub_id)


# ============================================================================
# RECOVERY SERVICES
# ============================================================================


@main.group(name="recovery")
def recovery_group() -> None:
    """A set of commands for Recovery Services backup."""


@recovery_group.command(name="backup")
@click.option("--vault-name", help="Recovery Services vault name")
@click.option("--vault-group", help="Vault resource group (default: VM resource group)")
@click.option("--group", "-g", help="Resource group of the VMs")
@click.option("--sub-id", "-s", help="Subscription ID")
@click.option(
    "--names", "-n", multiple=True, callback=_split_names, help="VM names (default: all)"
)
@click.pass_context
def recovery_backup(
    ctx: click.Context,
    vault_name: str | None,
    vault_group: str | None,
    group: str | None,
    sub_id: str | None,
    names: list[str] | None,
) -> None:
    """Register virtual machines for backup with the vault's DefaultPolicy.

    VMs are registered one at a time. A VM whose registration fails is
    reported and the remaining VMs are still processed.
    """
    try:
        scope = ConfigManager.resolve_vault_scope(
            subscription_id=sub_id,
            resource_group=group,
            vault_name=vault_name,
            vault_resource_group=vault_group,
            custom_path=ctx.obj["config_path"],
        )

        arm = _arm_client(ctx)
        orchestrator = BatchRegistrationOrchestrator(
            BackupClient(arm),
            poller=LroPoller(),
            default_retry_after=get_retry_config().default_retry_after,
        )

        with _spinner("Refreshing recovery services vault...") as progress:
            task_id = progress.task_ids[0]
            orchestrator.refresh_vault(scope)

            progress.update(task_id, description="Getting list of virtual machines...")
            vms = VMClient(arm).list_vms(scope.resource_group, scope.subscription_id)

            summary = orchestrator.run(
                scope, vms, names=names, on_progress=_progress_reporter(progress)
            )

        print_table(registration_table(summary), console)
        if not summary.all_succeeded:
            click.echo(f"Warning: {summary.format_summary()}", err=True)
            sys.exit(1)
        click.echo("All virtual machines protected")
    except AzvmError as e:
        _fail(e)


if __name__ == "__main__":
    main()
