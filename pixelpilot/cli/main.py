"""Main CLI entry point using Typer."""

import asyncio
import base64
import mimetypes
from pathlib import Path

import anyio
import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel

from pixelpilot import __version__
from pixelpilot.auth.models import SENTINEL_OTP, AuthStep
from pixelpilot.chat.exchange import ExchangeEvent, ExchangeEventType
from pixelpilot.chat.models import Sender
from pixelpilot.core.client import PixelPilot
from pixelpilot.core.config import get_settings
from pixelpilot.core.exceptions import (
    CooldownError,
    InvalidOtpError,
    NotFoundError,
    PixelPilotError,
    ValidationError,
)
from pixelpilot.core.log_config import configure_logging

app = typer.Typer(
    name="pixelpilot",
    help="Pixel Pilot - chat with a simulated assistant behind a phone/OTP login",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()

EXIT_WORDS = {"exit", "quit", "bye", "q"}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Pixel Pilot[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Pixel Pilot - conversational chat client.

    Sign in with a phone number and a (mock) OTP, then chat in as many
    chatrooms as you like. Everything is stored locally.
    """
    configure_logging(get_settings())


def build_client() -> PixelPilot:
    """Create and rehydrate a client from settings."""
    client = PixelPilot()
    client.start()
    return client


def print_validation(error: ValidationError) -> None:
    for field_name, message in error.errors.items():
        console.print(f"[red]{field_name}:[/red] {message}")


def image_data_uri(path: Path) -> str:
    """Read an image file into a data URI."""
    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'application/octet-stream'};base64,{encoded}"


async def wait_until_idle(client: PixelPilot) -> None:
    """Wait for an in-flight OTP dispatch or resend to land."""
    if not client.auth.busy:
        return

    idle = asyncio.Event()

    def on_change(engine) -> None:
        if not engine.busy:
            idle.set()

    unsubscribe = client.auth.subscribe(on_change)
    try:
        await idle.wait()
    finally:
        unsubscribe()


async def wait_for_reply(client: PixelPilot, chatroom_id: str) -> None:
    """Wait until no reply is owed to the chatroom."""
    if not client.exchange.is_composing(chatroom_id):
        return

    done = asyncio.Event()

    def on_event(event: ExchangeEvent) -> None:
        if event.chatroom_id != chatroom_id:
            return
        if event.event_type is ExchangeEventType.REPLIED and event.message:
            console.print()
            console.print(f"[bold cyan]{client.settings.pixelpilot_assistant_name}[/bold cyan]")
            console.print(event.message.content)
            console.print()
        if event.event_type in (ExchangeEventType.COMPOSING_STOPPED, ExchangeEventType.CANCELLED):
            done.set()

    unsubscribe = client.exchange.subscribe(on_event)
    try:
        with console.status(
            f"[dim]{client.settings.pixelpilot_assistant_name} is typing...[/dim]"
        ):
            await done.wait()
    finally:
        unsubscribe()


# =============================================================================
# AUTH COMMANDS
# =============================================================================


async def _login_flow(client: PixelPilot, dial_code: str | None, phone: str | None) -> bool:
    while not client.load_countries():
        console.print("[yellow]Country list unavailable.[/yellow]")
        answer = console.input("Retry? [bold](y/n)[/bold]: ").strip().lower()
        if answer not in ("y", "yes"):
            raise typer.Exit(code=1)

    while client.auth.step is AuthStep.UNAUTHENTICATED:
        if not client.auth.can_request_otp:
            await wait_until_idle(client)
            continue

        code = dial_code or console.input("[bold]Country code[/bold] (e.g. +91): ").strip()
        if client.directory.get(code) is None:
            matches = client.directory.search(code)[:5]
            hint = ", ".join(f"{c.alpha3_code} {c.dial_code}" for c in matches)
            console.print(f"[yellow]Unknown dial code.[/yellow] {hint}")
            dial_code = None
            continue

        digits = phone or console.input("[bold]Phone[/bold]: ").strip()
        try:
            client.auth.request_otp(code, digits)
        except ValidationError as e:
            print_validation(e)
            dial_code, phone = None, None
            continue

        with console.status("[dim]Sending OTP...[/dim]"):
            await wait_until_idle(client)
        console.print(
            f"[green]OTP Sent![/green] Please check your messages. The mock OTP is {SENTINEL_OTP}."
        )

    while client.auth.step is AuthStep.AWAITING_OTP:
        answer = console.input(
            "[bold]OTP[/bold] ([dim]'r' to resend, 'b' to change number[/dim]): "
        ).strip()

        if answer.lower() == "b":
            client.auth.cancel_otp()
            return False
        if answer.lower() == "r":
            try:
                client.auth.resend_otp()
            except CooldownError as e:
                console.print(f"[yellow]Resend OTP in {e.remaining_seconds}s[/yellow]")
                continue
            with console.status("[dim]Resending OTP...[/dim]"):
                await wait_until_idle(client)
            console.print(f"[green]OTP Resent![/green] The mock OTP is {SENTINEL_OTP}.")
            continue

        try:
            client.auth.verify_otp(answer)
        except ValidationError as e:
            print_validation(e)
        except InvalidOtpError as e:
            console.print(f"[red]Invalid OTP.[/red] {e}")

    return client.auth.is_authenticated


@app.command()
def login(
    dial_code: str | None = typer.Option(None, "--code", "-c", help="Country dial code"),
    phone: str | None = typer.Option(None, "--phone", "-p", help="Phone number digits"),
) -> None:
    """
    Sign in with your phone number and the OTP.

    Example:
        pixelpilot login --code +91 --phone 9876543210
    """
    client = build_client()
    if client.auth.is_authenticated:
        console.print(f"[dim]Already signed in as {client.auth.user.phone_number}[/dim]")
        return

    async def run() -> None:
        code, number = dial_code, phone
        try:
            while not await _login_flow(client, code, number):
                # Back to phone entry: ask again instead of reusing the options.
                code, number = None, None
        finally:
            client.dispose()

    anyio.run(run)
    console.print(
        Panel.fit(
            f"Welcome back, [bold]{client.auth.user.phone_number}[/bold]!",
            title="[bold green]Login Successful[/bold green]",
            border_style="green",
        )
    )


@app.command()
def logout() -> None:
    """Sign out. Your chatrooms are kept."""
    client = build_client()
    if not client.auth.is_authenticated:
        console.print("[dim]Not signed in.[/dim]")
        return
    client.auth.logout()
    console.print("[green]Signed out.[/green]")


@app.command()
def whoami() -> None:
    """Show the signed-in phone number."""
    client = build_client()
    if client.auth.user is None:
        console.print("[yellow]Not signed in.[/yellow] Run [bold]pixelpilot login[/bold].")
        raise typer.Exit(code=1)
    console.print(client.auth.user.phone_number)


# =============================================================================
# CHAT
# =============================================================================


@app.command()
def chat(
    room: str | None = typer.Option(None, "--room", "-r", help="Chatroom ID to continue"),
    image: Path | None = typer.Option(
        None,
        "--image",
        "-i",
        exists=True,
        dir_okay=False,
        help="Attach an image to the first message",
    ),
) -> None:
    """
    Chat with Pixel Pilot.

    Starts a new chatroom unless --room is given.
    """
    client = build_client()
    if not client.auth.is_authenticated:
        console.print("[yellow]Please sign in first:[/yellow] pixelpilot login")
        raise typer.Exit(code=1)

    if room is not None:
        try:
            client.chat.set_active_chatroom_id(room)
        except NotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from e

    attachment = image_data_uri(image) if image else None

    async def run() -> None:
        active = client.chat.active_chatroom
        console.print()
        console.print(
            Panel.fit(
                "[bold cyan]PIXEL PILOT[/bold cyan]\n[dim]How can I help you today.[/dim]",
                border_style="cyan",
            )
        )
        if active is not None:
            for message in active.messages:
                who = "You" if message.sender is Sender.USER else client.exchange.assistant_name
                console.print(f"[bold]{who}[/bold] [dim]{message.timestamp:%H:%M}[/dim]")
                console.print(message.content)
        console.print("[dim]Type 'exit' to leave.[/dim]\n")

        nonlocal attachment
        try:
            while True:
                user_input = console.input("[bold green]You>[/bold green] ")
                if user_input.lower().strip() in EXIT_WORDS:
                    console.print("\n[dim]Goodbye![/dim]\n")
                    break
                if not user_input.strip() and not attachment:
                    continue

                try:
                    if client.chat.active_chatroom is None:
                        new_room, _ = client.start_chat(user_input, attachment)
                        console.print(f"[dim]Started {new_room.title} ({new_room.id})[/dim]")
                    else:
                        client.send_message(client.chat.active_chatroom.id, user_input, attachment)
                except PixelPilotError as e:
                    console.print(f"[red]Error: {e}[/red]")
                    continue

                attachment = None
                await wait_for_reply(client, client.chat.active_chatroom_id)
        except (KeyboardInterrupt, EOFError):
            console.print("\n\n[dim]Session interrupted. Goodbye![/dim]\n")
        finally:
            client.dispose()

    anyio.run(run)
    logger.debug("Chat session ended")


from pixelpilot.cli import commands  # noqa: E402,F401  (registers extra commands)


if __name__ == "__main__":
    app()
