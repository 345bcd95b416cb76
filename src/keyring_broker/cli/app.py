"""CLI for the keyring broker - inspect accounts and resolve signing requests."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from keyring_broker.errors import KeyringError

app = typer.Typer(
    name="keyring-broker",
    help="Manage keyring accounts and approve or reject pending signing requests.",
    no_args_is_help=True,
)
console = Console()

_selected_profile: str = "default"
_base_path: Optional[Path] = None


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"keyring-broker {version('keyring-broker')}")
        raise typer.Exit()


@app.callback()
def main(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-P",
        help="Broker profile to operate on",
        envvar="KEYRING_BROKER_PROFILE",
    ),
    base: Optional[Path] = typer.Option(
        None,
        "--base",
        help="Directory containing .keyring-broker/ (defaults to the current directory)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Manage keyring accounts and approve or reject pending signing requests."""
    global _selected_profile, _base_path
    _selected_profile = profile
    _base_path = base


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


async def _with_service(action):
    """Open the selected profile, run ``action(service)``, and shut down."""
    from keyring_broker.core.service import KeyringService

    service = await KeyringService.load(_base_path, profile=_selected_profile)
    try:
        return await action(service)
    finally:
        await service.shutdown()


def _call_service(action):
    """Run *action* against the profile, turning broker errors into exit code 1."""
    try:
        return _run(_with_service(action))
    except KeyringError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _call(action):
    """Run ``action(keyring)`` for the selected profile."""
    return _call_service(lambda service: action(service.keyring))


@app.command()
def init(
    name: str = typer.Option("Keyring Broker", "--name", "-n", help="Display name of this broker"),
):
    """Create a profile with a default configuration."""
    from keyring_broker.core.service import KeyringService

    async def _init():
        service = await KeyringService.init(_base_path, name=name, profile=_selected_profile)
        profile_dir = service.profile_dir
        await service.shutdown()
        return profile_dir

    profile_dir = _run(_init())
    console.print(Panel(
        f"[bold green]Profile initialized.[/bold green]\n\n"
        f"Config: [cyan]{profile_dir / 'config.yaml'}[/cyan]",
        title=name,
    ))


@app.command("chains")
def chains(
    name: Optional[str] = typer.Argument(None, help="Show only this chain"),
):
    """List the known EVM chains and their CAIP-2 ids."""
    from keyring_broker.core.chains import CHAINS, get_chain

    if name is None:
        selected = list(CHAINS.values())
    else:
        try:
            selected = [get_chain(name)]
        except KeyError as e:
            console.print(f"[red]{escape(str(e.args[0]))}[/red]")
            raise typer.Exit(1)

    table = Table(title="Known Chains")
    table.add_column("Name", style="cyan")
    table.add_column("CAIP-2")
    table.add_column("Symbol")
    table.add_column("Explorer", style="dim")
    for chain in selected:
        table.add_row(chain.name, chain.caip2_id, chain.native_symbol, chain.explorer_url)
    console.print(table)


@app.command("events")
def events(
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum number of events to show"),
    drain: bool = typer.Option(False, "--drain", help="Remove the shown events from the journal"),
):
    """Show notifications journaled for the host, oldest first."""

    async def _events(service):
        if service.journal is None:
            return None
        if drain:
            return await service.journal.drain(limit)
        return await service.journal.entries(limit)

    entries = _call_service(_events)
    if entries is None:
        console.print("[yellow]Event journaling is disabled for this profile.[/yellow]")
        return
    if not entries:
        console.print("[dim]No journaled events.[/dim]")
        return

    table = Table(title="Journaled Events")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Payload")
    for entry in entries:
        table.add_row(str(entry.id), entry.event.value, escape(json.dumps(entry.payload)))
    console.print(table)


@app.command("approval-mode")
def approval_mode(
    value: Optional[str] = typer.Argument(None, help="on or off; omit to show the current value"),
):
    """Show or set whether callers should wait for resolution synchronously."""
    if value is not None and value.lower() not in ("on", "off"):
        console.print("[red]Expected 'on' or 'off'.[/red]")
        raise typer.Exit(1)

    async def _mode(keyring):
        if value is not None:
            await keyring.set_approval_mode(value.lower() == "on")
        return await keyring.get_approval_mode()

    current = _call(_mode)
    state = "[green]on[/green]" if current else "[yellow]off[/yellow]"
    console.print(f"Approval mode: {state}")


# ------------------------------------------------------------------
# accounts sub-commands
# ------------------------------------------------------------------

accounts_app = typer.Typer(
    name="accounts",
    help="Manage keyring accounts.",
    no_args_is_help=True,
)
app.add_typer(accounts_app, name="accounts")


@accounts_app.command("list")
def accounts_list():
    """Show all accounts."""

    async def _list(keyring):
        return await keyring.list_accounts()

    accounts = _call(_list)
    if not accounts:
        console.print("[dim]No accounts.[/dim]")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="dim")
    table.add_column("Address", style="cyan")
    table.add_column("Type")
    table.add_column("Methods", justify="right")
    for account in accounts:
        table.add_row(account.id, account.address, account.type, str(len(account.methods)))
    console.print(table)


@accounts_app.command("show")
def accounts_show(account_id: str = typer.Argument(help="Account ID")):
    """Show one account."""

    async def _show(keyring):
        return await keyring.get_account(account_id)

    account = _call(_show)
    console.print(Panel(
        f"Address: [cyan]{account.address}[/cyan]\n"
        f"Type:    {account.type}\n"
        f"Methods: {', '.join(account.methods)}\n"
        f"Options: {escape(json.dumps(account.options))}",
        title=f"Account {account.id}",
    ))


@accounts_app.command("create")
def accounts_create(
    address: str = typer.Argument(help="Account address (0x...)"),
    hd_path: Optional[str] = typer.Option(None, "--hd-path", help="Derivation path reported by the device"),
):
    """Register an account whose key lives on the approval device."""
    options = {"address": address}
    if hd_path:
        options["hdPath"] = hd_path

    async def _create(keyring):
        return await keyring.create_account(options)

    account = _call(_create)
    console.print(f"[bold green]Account created:[/bold green] {account.address} (id={account.id})")


@accounts_app.command("delete")
def accounts_delete(account_id: str = typer.Argument(help="Account ID to delete")):
    """Delete an account."""
    typer.confirm(f"Delete account {account_id}?", abort=True)

    async def _delete(keyring):
        await keyring.delete_account(account_id)

    _call(_delete)
    console.print(f"[bold]Account {account_id} deleted.[/bold]")


# ------------------------------------------------------------------
# requests sub-commands
# ------------------------------------------------------------------

requests_app = typer.Typer(
    name="requests",
    help="Review pending signing requests.",
    no_args_is_help=True,
)
app.add_typer(requests_app, name="requests")


@requests_app.command("list")
def requests_list():
    """Show the pending request queue."""

    async def _list(keyring):
        return await keyring.list_requests()

    requests = _call(_list)
    if not requests:
        console.print("[dim]No pending requests.[/dim]")
        return

    table = Table(title="Pending Requests")
    table.add_column("ID", style="dim")
    table.add_column("Method", style="cyan")
    table.add_column("Account", style="dim")
    table.add_column("Scope")
    for request in requests:
        table.add_row(request.id, request.method, request.account or "-", request.scope or "-")
    console.print(table)


@requests_app.command("show")
def requests_show(request_id: str = typer.Argument(help="Request ID")):
    """Show one pending request with its parameters."""
    from keyring_broker.core.chains import find_chain

    async def _show(keyring):
        return await keyring.get_request(request_id)

    request = _call(_show)
    chain = find_chain(request.scope) if request.scope else None
    scope = f"{request.scope} ({chain.name})" if chain else (request.scope or "N/A")
    console.print(Panel(
        f"Method:  [bold]{request.method}[/bold]\n"
        f"Account: {request.account or 'N/A'}\n"
        f"Scope:   {scope}\n"
        f"Params:  {escape(json.dumps(request.params, indent=2))}",
        title=f"Request {request_id}",
    ))


@requests_app.command("approve")
def requests_approve(
    request_id: str = typer.Argument(help="Request ID to approve"),
    data: str = typer.Option(..., "--data", "-d", help="Approval payload as JSON, as returned by the device"),
):
    """Record the device's result for a pending request."""
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        console.print(f"[red]--data is not valid JSON: {e}[/red]")
        raise typer.Exit(1)

    async def _approve(keyring):
        await keyring.approve_request(request_id, payload)

    _call(_approve)
    console.print(f"[bold green]Request {request_id} approved.[/bold green]")


@requests_app.command("reject")
def requests_reject(request_id: str = typer.Argument(help="Request ID to reject")):
    """Reject a pending request."""

    async def _reject(keyring):
        await keyring.reject_request(request_id)

    _call(_reject)
    console.print(f"[bold]Request {request_id} rejected.[/bold]")


if __name__ == "__main__":
    app()
