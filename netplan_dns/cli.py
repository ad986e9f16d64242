import subprocess
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.dns_updater import DNSUpdater
from .core.errors import ApplyFailed, DNSConfigError, InvalidAddress
from .core.providers import (
    CUSTOM_NUMBER, MAX_RECOMMENDED_SERVERS, PROVIDERS, is_custom, is_valid_ipv4,
)
from .core.system import detect_container_environment
from .logutil import init_logging
from .models.network_models import Context
from .settings import settings

console = Console()

SHOW_CHOICE = CUSTOM_NUMBER + 1
RESTORE_CHOICE = CUSTOM_NUMBER + 2


def build_updater(context: Context) -> DNSUpdater:
    return DNSUpdater(context, chooser=prompt_choice if context.interactive else None)


def prompt_choice(title: str, options: List[str]) -> str:
    for i, option in enumerate(options, 1):
        console.print(f"  [yellow]{i}.[/yellow] {option}")
    selection = click.prompt(f"{title} (1-{len(options)})", type=click.IntRange(1, len(options)))
    return options[selection - 1]


def prompt_custom_addresses() -> List[str]:
    """Ask for nameservers one by one until an empty line."""
    addresses: List[str] = []
    console.print("[yellow]Enter custom DNS servers (press Enter when done):[/yellow]")
    while True:
        value = click.prompt(f"DNS Server {len(addresses) + 1} (or press Enter to finish)",
                             default="", show_default=False).strip()
        if not value:
            if addresses:
                break
            console.print("[red]At least one DNS server must be specified[/red]")
            continue
        if not is_valid_ipv4(value):
            console.print(f"[red]Invalid IP address: {value}[/red]")
            continue
        addresses.append(value)
        console.print(f"[green]Added DNS server: {value}[/green]")
        if len(addresses) >= MAX_RECOMMENDED_SERVERS:
            console.print(f"[yellow]Maximum {MAX_RECOMMENDED_SERVERS} DNS servers recommended[/yellow]")
            if not click.confirm("Add more?", default=False):
                break
    return addresses


def report_error(e: DNSConfigError) -> None:
    console.print(f"[bold red]ERROR[/bold red] {e.category}: {escape(str(e))}")
    if isinstance(e, ApplyFailed):
        if e.rolled_back:
            console.print("[green]Previous configuration was restored and applied.[/green]")
        else:
            console.print("[bold red on white] ROLLBACK FAILED: network configuration is in an "
                          "indeterminate state, check /etc/netplan manually [/bold red on white]")


def run(ctx: click.Context, operation):
    try:
        return operation()
    except DNSConfigError as e:
        report_error(e)
        ctx.exit(e.exit_code)
    except subprocess.CalledProcessError as e:
        console.print(f"[bold red]ERROR[/bold red] Could not list network interfaces: {escape(str(e))}")
        ctx.exit(1)
    except PermissionError as e:
        console.print(f"[bold red]ERROR[/bold red] {escape(str(e))} (are you root?)")
        ctx.exit(1)
    except OSError as e:
        console.print(f"[bold red]ERROR[/bold red] {escape(str(e))}")
        ctx.exit(1)


def providers_table(with_actions: bool = False) -> Table:
    table = Table(title="Available DNS Providers")
    table.add_column("#", style="yellow")
    table.add_column("Provider", style="green")
    table.add_column("Servers")
    table.add_column("Notes")
    for provider in PROVIDERS:
        table.add_row(str(provider.number), provider.name,
                      ", ".join(provider.addresses), provider.description)
    table.add_row(str(CUSTOM_NUMBER), "Custom", "", "Enter your own DNS servers")
    if with_actions:
        table.add_row(str(SHOW_CHOICE), "Show current", "", "Display current DNS configuration")
        table.add_row(str(RESTORE_CHOICE), "Restore backup", "", "Restore previous configuration")
    return table


@click.group(invoke_without_command=True)
@click.option("--non-interactive", is_flag=True, help="Never prompt; ambiguity is an error.")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
@click.option("--netplan-dir", type=click.Path(file_okay=False), default=None)
@click.option("--backup-dir", type=click.Path(file_okay=False), default=None)
@click.pass_context
def cli(ctx: click.Context, non_interactive: bool, log_level: Optional[str],
        netplan_dir: Optional[str], backup_dir: Optional[str]):
    """Configure DNS servers of a netplan-managed host."""
    init_logging(settings, log_level)
    overrides = {}
    if netplan_dir:
        overrides["netplan_dir"] = netplan_dir
    if backup_dir:
        overrides["backup_dir"] = backup_dir
    context = Context.from_settings(settings, interactive=not non_interactive,
                                    is_container=detect_container_environment(), **overrides)
    ctx.obj = build_updater(context)

    if ctx.invoked_subcommand is None:
        if non_interactive:
            click.echo(ctx.get_help())
            return
        menu(ctx)


def menu(ctx: click.Context):
    console.print(providers_table(with_actions=True))
    choice = click.prompt(f"Select DNS provider (1-{RESTORE_CHOICE})",
                          type=click.IntRange(1, RESTORE_CHOICE))
    if choice == SHOW_CHOICE:
        ctx.invoke(show)
    elif choice == RESTORE_CHOICE:
        ctx.invoke(restore)
    else:
        ctx.invoke(set_dns, provider=str(choice))


@cli.command()
def providers():
    """List DNS provider presets."""
    console.print(providers_table())


@cli.command("set")
@click.argument("provider")
@click.option("--custom", "custom_addresses", multiple=True, help="Nameserver for the custom provider.")
@click.option("--interface", "-i", default=None, help="Interface to configure.")
@click.option("--config-file", "-c", default=None, help="Netplan file name, path or index.")
@click.option("--yes", "-y", is_flag=True, help="Apply without confirmation.")
@click.option("--verify/--no-verify", default=True, help="Test name resolution afterwards.")
@click.pass_context
def set_dns(ctx: click.Context, provider: str, custom_addresses=(), interface=None,
            config_file=None, yes=False, verify=True):
    """Set nameservers from PROVIDER (name, number or 'custom')."""
    updater: DNSUpdater = ctx.obj
    interactive = updater.ctx.interactive
    addresses = list(custom_addresses)
    if is_custom(provider) and not addresses:
        if not interactive:
            report_error(InvalidAddress("--custom is required for the custom provider"))
            ctx.exit(InvalidAddress.exit_code)
        addresses = prompt_custom_addresses()

    change = run(ctx, lambda: updater.prepare(provider, addresses, interface, config_file))

    console.print()
    console.print("[bold]Configuration Summary:[/bold]")
    console.print(f"  [yellow]Config file:[/yellow] {change.config_file}")
    console.print(f"  [yellow]Interface:[/yellow] {change.interface.name}")
    console.print(f"  [yellow]DNS Provider:[/yellow] {change.provider.name}")
    console.print(f"  [yellow]DNS Servers:[/yellow] {', '.join(change.provider.addresses)}")
    console.print()

    if interactive and not yes and not click.confirm("Apply this configuration?", default=False):
        console.print("Configuration cancelled")
        return

    result = run(ctx, lambda: updater.commit(change, verify=verify))
    if result.backup_id:
        console.print(f"Backup: {result.backup_id}")
    console.print(f"[green]{result.message}[/green]")


@cli.command()
@click.option("--config-file", "-c", default=None, help="Netplan file name, path or index.")
@click.pass_context
def show(ctx: click.Context, config_file: Optional[str] = None):
    """Show the current DNS configuration."""
    updater: DNSUpdater = ctx.obj
    current = run(ctx, lambda: updater.show_current(config_file))

    console.print("[yellow]Resolver nameservers:[/yellow]")
    for server in current["resolver_nameservers"] or ["none"]:
        console.print(f"  {server}")

    if current["resolver_status"]:
        console.print("[yellow]Resolver status:[/yellow]")
        console.print(current["resolver_status"], markup=False, highlight=False)

    console.print("[yellow]Physical interfaces:[/yellow]")
    for iface in current["candidate_interfaces"]:
        console.print(f"  [cyan]{iface['name']}[/cyan] ({iface['kind']}, {iface['state'] or 'unknown'})")

    console.print("[yellow]Interfaces in netplan:[/yellow]")
    for name, servers in current["interfaces"].items():
        console.print(f"  [cyan]{name}[/cyan]: {', '.join(servers) or 'no nameservers configured'}")

    console.print("[yellow]Netplan configuration:[/yellow]")
    if current["content"] is not None:
        console.print(f"[blue]{current['config_file']}[/blue]")
        console.print(current["content"], markup=False, highlight=False)
    else:
        console.print("No netplan configuration found")
        for name in current["netplan_files"]:
            console.print(f"  - {name}")


@cli.command()
@click.pass_context
def backups(ctx: click.Context):
    """List netplan backups, newest first."""
    updater: DNSUpdater = ctx.obj
    items = run(ctx, updater.list_backups)
    if not items:
        console.print("No backups found")
        return
    table = Table(title="Available backups")
    table.add_column("Backup", no_wrap=True, min_width=31)
    table.add_column("Size", justify="right")
    table.add_column("Path", overflow="fold")
    for item in items:
        label = f"{item.backup_id} (latest)" if item.is_latest else item.backup_id
        table.add_row(label, str(item.size), item.path)
    console.print(table)


@cli.command()
@click.argument("backup_id", required=False)
@click.option("--config-file", "-c", default=None, help="Netplan file name, path or index.")
@click.pass_context
def restore(ctx: click.Context, backup_id: Optional[str] = None, config_file: Optional[str] = None):
    """Restore BACKUP_ID (default: the most recent backup)."""
    updater: DNSUpdater = ctx.obj
    if backup_id is None and updater.ctx.interactive:
        ids = [item.backup_id for item in run(ctx, updater.list_backups)]
        if ids:
            backup_id = prompt_choice("Select backup to restore", ids)

    result = run(ctx, lambda: updater.restore(backup_id, config_file=config_file))
    console.print(f"[green]{result.message}[/green]")


@cli.command()
def serve():
    """Run the HTTP API."""
    from .main import serve as serve_api

    serve_api()


def main():
    cli(prog_name="netplan-dns")


if __name__ == "__main__":
    main()
