"""Main CLI application entry point."""

import sys
from typing import Optional
import typer
from rich.console import Console

from .commands import (
    config_command,
    init_db_command,
    list_command,
    request_command,
    respond_command,
    show_command,
    stats_command,
    status_command,
)

# Create Typer app
app = typer.Typer(
    name="consultlink",
    help="ConsultLink - Consultant and client connection management",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Rich console for output
console = Console()

ConfigOption = typer.Option(
    None,
    "--config", "-c",
    help="Path to configuration file",
)
VerboseOption = typer.Option(
    False,
    "--verbose", "-v",
    help="Enable verbose output with technical details",
)
JsonOption = typer.Option(
    False,
    "--json",
    help="Print machine-readable JSON",
)
ActorOption = typer.Option(
    ...,
    "--as",
    help="Acting participant as kind:id (e.g. consultant:12)",
)


@app.command(name="init-db")
def init_db(
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """
    Create the connection tables.

    Safe to run repeatedly; existing tables are left alone.
    """
    init_db_command(config_path=config, verbose=verbose, console=console)


@app.command(name="request")
def request(
    receiver: str = typer.Argument(
        ...,
        help="Participant to connect with, as kind:id",
    ),
    actor: str = ActorOption,
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    Send a connection request.

    The request stays pending until the receiver accepts or rejects it.
    """
    request_command(
        actor=actor,
        receiver=receiver,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="respond")
def respond(
    connection_id: int = typer.Argument(
        ...,
        help="Connection ID",
    ),
    status: str = typer.Argument(
        ...,
        help="New status: accepted, rejected or removed",
    ),
    actor: str = ActorOption,
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    Accept, reject or remove a connection.

    Only the receiver can accept or reject a pending request. Either
    party can remove an accepted connection.
    """
    respond_command(
        actor=actor,
        connection_id=connection_id,
        status=status,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="list")
def list_connections(
    actor: str = ActorOption,
    status: Optional[str] = typer.Option(
        None,
        "--status", "-s",
        help="Filter by status (pending, accepted, rejected, removed)",
    ),
    counterpart_kind: Optional[str] = typer.Option(
        None,
        "--with-kind",
        help="Only connections whose other party is this kind",
    ),
    requester_kind: Optional[str] = typer.Option(
        None,
        "--requester-kind",
        help="Filter by requester kind",
    ),
    receiver_kind: Optional[str] = typer.Option(
        None,
        "--receiver-kind",
        help="Filter by receiver kind",
    ),
    page: int = typer.Option(
        1,
        "--page", "-p",
        help="Page number",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-n",
        help="Page size (default from configuration)",
    ),
    sort_by: str = typer.Option(
        "request_date",
        "--sort-by",
        help="request_date, response_date or status",
    ),
    sort_order: str = typer.Option(
        "desc",
        "--sort-order",
        help="asc or desc",
    ),
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    List your connections with the other party's details.
    """
    list_command(
        actor=actor,
        status=status,
        counterpart_kind=counterpart_kind,
        requester_kind=requester_kind,
        receiver_kind=receiver_kind,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        pending_only=False,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="pending")
def pending(
    actor: str = ActorOption,
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size"),
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    List pending requests, sent and received.
    """
    list_command(
        actor=actor,
        status=None,
        counterpart_kind=None,
        requester_kind=None,
        receiver_kind=None,
        page=page,
        limit=limit,
        sort_by="request_date",
        sort_order="desc",
        pending_only=True,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="show")
def show(
    connection_id: int = typer.Argument(..., help="Connection ID"),
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    Show one connection.
    """
    show_command(
        connection_id=connection_id,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="status")
def status(
    other: str = typer.Argument(..., help="Other participant as kind:id"),
    actor: str = ActorOption,
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    Check whether you are connected to someone and can send a request.
    """
    status_command(
        actor=actor,
        other=other,
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="stats")
def stats(
    config: Optional[str] = ConfigOption,
    as_json: bool = JsonOption,
    verbose: bool = VerboseOption,
):
    """
    Show connection counts by status and by participant kinds.
    """
    stats_command(
        config_path=config,
        as_json=as_json,
        verbose=verbose,
        console=console,
    )


@app.command(name="config")
def config(
    init: bool = typer.Option(
        False,
        "--init",
        help="Create default configuration file",
    ),
    path: Optional[str] = typer.Option(
        None,
        "--path",
        help="Configuration file path",
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration",
    ),
):
    """
    Manage ConsultLink configuration.

    Create default config, show current settings, or list config sources.
    """
    config_command(
        init=init,
        path=path,
        show=show,
        console=console,
    )


def main():
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
