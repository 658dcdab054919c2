"""Additional CLI commands for Pixel Pilot."""

import typer
from rich.console import Console
from rich.table import Table

from pixelpilot.cli.main import app, build_client, print_validation
from pixelpilot.core.exceptions import DirectoryLoadError, NotFoundError, ValidationError

console = Console()


@app.command()
def rooms(
    search: str = typer.Option("", "--search", "-s", help="Filter chatrooms by title"),
) -> None:
    """
    List chatrooms.
    """
    client = build_client()
    chatrooms = client.chat.search_chatrooms(search)

    if not chatrooms:
        console.print("[yellow]No chatrooms found[/yellow]")
        return

    table = Table(title="Chatrooms")
    table.add_column("", width=1)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Last activity", style="dim")

    for room in chatrooms:
        last = room.messages[-1].timestamp.strftime("%Y-%m-%d %H:%M") if room.messages else "-"
        marker = "*" if room.id == client.chat.active_chatroom_id else ""
        table.add_row(marker, room.id, room.title, str(len(room.messages)), last)

    console.print(table)


@app.command()
def rename(
    chatroom_id: str = typer.Argument(..., help="Chatroom ID"),
    title: str = typer.Argument(..., help="New title"),
) -> None:
    """
    Rename a chatroom.
    """
    client = build_client()
    try:
        room = client.chat.rename_chatroom(chatroom_id, title)
    except ValidationError as e:
        print_validation(e)
        raise typer.Exit(code=1) from e
    except NotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Renamed to[/green] {room.title}")


@app.command()
def delete(
    chatroom_id: str = typer.Argument(..., help="Chatroom ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """
    Delete a chatroom and its messages.
    """
    client = build_client()
    room = client.chat.get_chatroom(chatroom_id)
    if room is None:
        console.print(f"[red]Chatroom not found: {chatroom_id}[/red]")
        raise typer.Exit(code=1)

    if not force and not typer.confirm(f"Delete '{room.title}'?"):
        raise typer.Abort()

    client.delete_chatroom(chatroom_id)
    console.print(f"[green]Deleted[/green] {room.title}")


@app.command()
def countries(
    search: str = typer.Option("", "--search", "-s", help="Filter by name, code or dial code"),
) -> None:
    """
    Show the country dial codes available at login.
    """
    client = build_client()
    try:
        client.directory.load()
    except DirectoryLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title="Countries")
    table.add_column("Code", style="cyan")
    table.add_column("Country")
    table.add_column("Dial code", justify="right")

    for country in client.directory.search(search):
        table.add_row(country.alpha3_code, country.common_name, country.dial_code)

    console.print(table)
