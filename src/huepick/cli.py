"""huepick command line: ask for one color on the terminal."""

from __future__ import annotations

import asyncio

import typer
from rich import get_console
from rich.console import Console
from rich.markup import escape

from huepick.color import Color
from huepick.config import Settings, get_settings
from huepick.errors import ConfigurationError, InvalidColorError
from huepick.logging_utils import configure_logging
from huepick.runtime import PickerRuntime
from huepick.ui.console import ConsoleRenderer, TerminalReader
from huepick.ui.manager import UiManager
from huepick.viewer import PREF_NATIVE_INPUT, ViewerHandle

app = typer.Typer(name="huepick", help="Ask for a color through a transient prompt window.", add_completion=False)


@app.callback()
def main() -> None:
    """Ask for a color through a transient prompt window."""


@app.command("pick")
def pick(
    title: str = typer.Option("Pick a color", "--title", help="Window title"),
    message: str = typer.Option("Pick a color", "--message", "-m", help="Prompt text"),
    default: str | None = typer.Option(None, "--default", "-d", help="Preselected hex color"),
    timeout: float = typer.Option(0.0, "--timeout", "-t", min=0, help="Seconds until expiry, 0 waits forever"),
    autofocus: bool = typer.Option(True, "--autofocus/--no-autofocus", help="Steal focus when the window opens"),
    native: bool = typer.Option(False, "--native", help="Use the plain terminal prompt instead of a window"),
) -> None:
    """Show one color prompt and print the chosen color."""

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        typer.echo(f"invalid configuration: {exc}", err=True)
        raise typer.Exit(2) from exc
    configure_logging(profile="console", level=settings.log_level)

    console = get_console()
    viewer = ViewerHandle("terminal", preferences={PREF_NATIVE_INPUT: native})
    try:
        color = asyncio.run(_run_pick(settings, console, viewer, title, message, default, timeout, autofocus))
    except InvalidColorError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(2) from exc

    if color is None:
        typer.echo("no color selected")
        raise typer.Exit(1)
    typer.echo(str(color))


async def _run_pick(
    settings: Settings,
    console: Console,
    viewer: ViewerHandle,
    title: str,
    message: str,
    default: str | None,
    timeout: float,
    autofocus: bool,
) -> Color | None:
    runtime = PickerRuntime(settings, renderer=ConsoleRenderer(console))
    async with runtime:
        pick_task = asyncio.create_task(
            runtime.pick_color(viewer, message, title, default, timeout=timeout, autofocus=autofocus)
        )
        # Let the request open its window before reading input.
        await asyncio.sleep(0)
        if pick_task.done() or runtime.prefers_native(viewer):
            return await pick_task

        done = asyncio.Event()
        pick_task.add_done_callback(lambda _: done.set())
        reader = TerminalReader(console)
        reader.start(asyncio.get_running_loop())
        try:
            await _feed_entries(runtime, viewer, reader, done, console)
        finally:
            reader.stop()
        return await pick_task


async def _feed_entries(
    runtime: PickerRuntime,
    viewer: ViewerHandle,
    reader: TerminalReader,
    done: asyncio.Event,
    console: Console,
) -> None:
    registry = runtime.registry
    if not isinstance(registry, UiManager):
        raise TypeError(f"terminal input needs a UiManager registry, got {type(registry).__name__}")
    async for line in reader.lines(done):
        windows = registry.windows_of(viewer)
        if not windows:
            return
        window = windows[0]
        if line is None or not line.strip():
            window.act("cancel")
            continue
        if not window.act("submit", {"entry": line.strip()}):
            console.print(f"[red]not a hex color:[/red] {escape(line.strip())}")
