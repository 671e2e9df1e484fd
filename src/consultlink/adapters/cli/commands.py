"""CLI command implementations."""

import asyncio
import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...application.commands import CreateConnectionCommand, UpdateConnectionStatusCommand
from ...application.queries import (
    GetConnectionQuery,
    GetConnectionStatusQuery,
    ListConnectionsQuery,
)
from ...domain.models import Connection, ConnectionPage, ConnectionStats, ParticipantRef
from ...infrastructure.config.config_loader import ConfigLoader
from ...infrastructure.di.container import DIContainer
from ...infrastructure.presentation.error_presenter import ErrorPresenter

T = TypeVar("T")

STATUS_STYLES = {
    "pending": "yellow",
    "accepted": "green",
    "rejected": "red",
    "removed": "dim",
    "none": "cyan",
}


def _run(
    config_path: Optional[str],
    verbose: bool,
    work: Callable[[DIContainer], Awaitable[T]],
) -> T:
    """Build the container, run one unit of work, always shut down."""
    async def session() -> T:
        container = DIContainer.create(config_path, verbose=verbose)
        async with container:
            return await work(container)

    return asyncio.run(session())


def _fail(error: BaseException, verbose: bool, as_json: bool, console: Console):
    outcome = ErrorPresenter.classify(error)
    if as_json:
        _echo_json(outcome.to_dict())
    else:
        console.print(f"\n{ErrorPresenter.present(error, verbose=verbose)}")
    raise SystemExit(outcome.exit_code)


def _echo_json(data: Any):
    typer.echo(json.dumps(data, indent=2, default=str))


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _status(value: str) -> str:
    style = STATUS_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


def _print_connection(connection: Connection, console: Console, title: str):
    table = Table(title=title, show_header=False, title_justify="left")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("ID", str(connection.connection_id))
    table.add_row("Requester", str(connection.requester))
    table.add_row("Receiver", str(connection.receiver))
    table.add_row("Status", _status(connection.status.value))
    table.add_row("Requested", _fmt_date(connection.request_date))
    table.add_row("Responded", _fmt_date(connection.response_date))
    table.add_row("Updated", _fmt_date(connection.updated_at))
    console.print(table)


def init_db_command(config_path: Optional[str], verbose: bool, console: Console):
    """
    Create the connection tables.

    Args:
        config_path: Config file path
        verbose: Verbose output
        console: Rich console
    """
    async def work(container: DIContainer) -> str:
        await container.database.create_schema()
        return container.config.storage.url

    try:
        url = _run(config_path, verbose, work)
    except Exception as e:
        _fail(e, verbose, False, console)

    console.print(f"[green]Database ready:[/green] {url}")


def request_command(
    actor: str,
    receiver: str,
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    Send a connection request.

    Args:
        actor: Requester as kind:id
        receiver: Receiver as kind:id
        config_path: Config file path
        as_json: Print JSON instead of a table
        verbose: Verbose output
        console: Rich console
    """
    try:
        requester_ref = ParticipantRef.from_token(actor)
        receiver_ref = ParticipantRef.from_token(receiver)
        command = CreateConnectionCommand(
            requester_kind=requester_ref.kind.value,
            requester_id=requester_ref.id,
            receiver_kind=receiver_ref.kind.value,
            receiver_id=receiver_ref.id,
        )
        connection = _run(
            config_path,
            verbose,
            lambda c: c.create_connection_handler.handle(command),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, "data": connection.to_dict()})
        return

    console.print(f"[green]Connection request sent[/green] to {connection.receiver}")
    _print_connection(connection, console, f"Connection {connection.connection_id}")


def respond_command(
    actor: str,
    connection_id: int,
    status: str,
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    Accept, reject or remove a connection.

    Args:
        actor: Acting participant as kind:id
        connection_id: Connection to change
        status: accepted, rejected or removed
        config_path: Config file path
        as_json: Print JSON instead of a table
        verbose: Verbose output
        console: Rich console
    """
    try:
        actor_ref = ParticipantRef.from_token(actor)
        command = UpdateConnectionStatusCommand(
            actor_kind=actor_ref.kind.value,
            actor_id=actor_ref.id,
            connection_id=connection_id,
            status=status,
        )
        connection = _run(
            config_path,
            verbose,
            lambda c: c.update_status_handler.handle(command),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, "data": connection.to_dict()})
        return

    console.print(
        f"Connection {connection.connection_id} is now {_status(connection.status.value)}"
    )


def list_command(
    actor: str,
    status: Optional[str],
    counterpart_kind: Optional[str],
    requester_kind: Optional[str],
    receiver_kind: Optional[str],
    page: int,
    limit: Optional[int],
    sort_by: str,
    sort_order: str,
    pending_only: bool,
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    List a participant's connections.

    Args:
        actor: Participant as kind:id
        status: Status filter
        counterpart_kind: Kind of the other party
        requester_kind: Requester kind filter
        receiver_kind: Receiver kind filter
        page: Page number
        limit: Page size (config default when None)
        sort_by: request_date, response_date or status
        sort_order: asc or desc
        pending_only: Only pending requests
        config_path: Config file path
        as_json: Print JSON instead of a table
        verbose: Verbose output
        console: Rich console
    """
    try:
        actor_ref = ParticipantRef.from_token(actor)
        query = ListConnectionsQuery(
            participant_kind=actor_ref.kind.value,
            participant_id=actor_ref.id,
            status=status,
            counterpart_kind=counterpart_kind,
            requester_kind=requester_kind,
            receiver_kind=receiver_kind,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            pending_only=pending_only,
        )
        result: ConnectionPage = _run(
            config_path,
            verbose,
            lambda c: c.list_connections_handler.handle(query),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, **result.to_dict()})
        return

    title = "Pending requests" if pending_only else "Connections"
    table = Table(title=f"{title} for {actor_ref}", title_justify="left")
    table.add_column("ID", justify="right")
    table.add_column("Role")
    table.add_column("With")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Requested")
    table.add_column("Responded")

    for view in result.items:
        connection = view.connection
        counterpart = view.counterpart_info
        role = connection.role_of(actor_ref)
        table.add_row(
            str(connection.connection_id),
            role.value if role else "-",
            str(connection.counterpart_of(actor_ref)),
            (counterpart.name if counterpart and counterpart.name else "[dim]unknown[/dim]"),
            _status(connection.status.value),
            _fmt_date(connection.request_date),
            _fmt_date(connection.response_date),
        )

    console.print(table)
    info = result.page_info
    console.print(
        f"Page {info.page} of {max(info.total_pages, 1)} ({info.total} total)",
        style="dim",
    )


def show_command(
    connection_id: int,
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    Show one connection.

    Args:
        connection_id: Connection id
        config_path: Config file path
        as_json: Print JSON instead of a table
        verbose: Verbose output
        console: Rich console
    """
    try:
        query = GetConnectionQuery(connection_id=connection_id)
        connection = _run(
            config_path,
            verbose,
            lambda c: c.get_connection_handler.handle(query),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, "data": connection.to_dict()})
        return

    _print_connection(connection, console, f"Connection {connection.connection_id}")


def status_command(
    actor: str,
    other: str,
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    Show the relationship between two participants.

    Args:
        actor: Participant as kind:id
        other: Other participant as kind:id
        config_path: Config file path
        as_json: Print JSON instead of text
        verbose: Verbose output
        console: Rich console
    """
    try:
        actor_ref = ParticipantRef.from_token(actor)
        other_ref = ParticipantRef.from_token(other)
        query = GetConnectionStatusQuery(
            participant_kind=actor_ref.kind.value,
            participant_id=actor_ref.id,
            other_kind=other_ref.kind.value,
            other_id=other_ref.id,
        )
        report = _run(
            config_path,
            verbose,
            lambda c: c.get_status_handler.handle(query),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, "data": report.to_dict()})
        return

    console.print(f"Status: {_status(report.status)}")
    console.print(f"Can connect: {'yes' if report.can_connect else 'no'}")
    if report.connection is not None:
        console.print(f"Connection: {report.connection.connection_id}")


def stats_command(
    config_path: Optional[str],
    as_json: bool,
    verbose: bool,
    console: Console,
):
    """
    Show aggregate connection counts.

    Args:
        config_path: Config file path
        as_json: Print JSON instead of a table
        verbose: Verbose output
        console: Rich console
    """
    try:
        stats: ConnectionStats = _run(
            config_path,
            verbose,
            lambda c: c.get_stats_handler.handle(),
        )
    except Exception as e:
        _fail(e, verbose, as_json, console)

    if as_json:
        _echo_json({"success": True, "data": stats.to_dict()})
        return

    table = Table(title="Connection statistics", title_justify="left")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    data = stats.to_dict()
    for key in ("total", "pending", "accepted", "rejected", "removed"):
        table.add_row(key, str(data[key]))
    for key, value in data["by_type"].items():
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


def config_command(
    init: bool,
    path: Optional[str],
    show: bool,
    console: Console,
):
    """
    Execute config command.

    Args:
        init: Create default config
        path: Config file path
        show: Show current config
        console: Rich console
    """
    console.print(Panel.fit(
        "[bold]ConsultLink Configuration[/bold]",
        border_style="blue"
    ))

    if init:
        try:
            config_path = ConfigLoader.create_default_config(path)
        except OSError as e:
            _fail(e, False, False, console)
        console.print(f"\n[green]Configuration file created: {config_path}[/green]")

    elif show:
        try:
            config = ConfigLoader.load(path)
        except Exception as e:
            _fail(e, False, False, console)
        console.print("\n[bold]Current Configuration:[/bold]")
        console.print(config.to_yaml(), markup=False, highlight=False)

    else:
        config_info = ConfigLoader.get_config_info()

        console.print("\n[bold]Configuration Files:[/bold]")
        if config_info["existing_configs"]:
            for cfg in config_info["existing_configs"]:
                console.print(f"  [green]{cfg}[/green]")
        else:
            console.print("  No configuration files found")

        console.print("\n[bold]Environment Overrides:[/bold]")
        if config_info["env_overrides"]:
            for env_var in config_info["env_overrides"]:
                console.print(f"  {env_var}")
        else:
            console.print("  None")

        console.print("\n[bold]Default Locations:[/bold]")
        for default_path in config_info["default_paths"]:
            console.print(f"  {default_path}")
