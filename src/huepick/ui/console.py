"""Terminal renderer for picker windows."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from typing import Any

from loguru import logger
from rich import get_console
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from huepick.ui.manager import UiWindow


class ConsoleRenderer:
    """Show windows as rich panels."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or get_console()

    def render(self, window: UiWindow, static_data: dict[str, Any] | None, data: dict[str, Any]) -> None:
        progress = data.get("timeout")
        if static_data is None:
            if progress is not None:
                logger.debug("console.countdown window={} left={:.0%}", window.window_id, progress)
            return

        default = static_data["defaultColor"]
        body = Text(static_data["message"])
        body.append("\n\ndefault ")
        body.append(f"  {default}  ", style=f"on {default}")
        subtitle = "enter a hex color, blank line cancels"
        if progress is not None:
            subtitle += " (expires)"
        self.console.print(Panel(body, title=escape(static_data["title"]), subtitle=subtitle, expand=False))

    def close(self, window: UiWindow) -> None:
        self.console.print(f"[dim]{escape(window.interface)} {window.window_id} closed[/dim]")


class TerminalReader:
    """Read terminal lines on a daemon thread and hand them to the event loop.

    ``None`` is queued once input is exhausted.
    """

    def __init__(self, console: Console | None = None, prompt: str = "> ") -> None:
        self.console = console or get_console()
        self.prompt = prompt
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._stopped = threading.Event()

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        thread = threading.Thread(target=self._pump, args=(loop,), name="huepick-terminal", daemon=True)
        thread.start()

    def stop(self) -> None:
        self._stopped.set()

    async def lines(self, stop: asyncio.Event) -> AsyncIterator[str | None]:
        """Yield lines until ``stop`` is set. A final ``None`` marks exhausted input."""

        while not stop.is_set():
            getter = asyncio.ensure_future(self._queue.get())
            stopper = asyncio.ensure_future(stop.wait())
            try:
                await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                stopper.cancel()
                if not getter.done():
                    getter.cancel()
            if getter.cancelled():
                return
            line = getter.result()
            yield line
            if line is None:
                return

    def _pump(self, loop: asyncio.AbstractEventLoop) -> None:
        while not self._stopped.is_set():
            try:
                line: str | None = self.console.input(self.prompt)
            except (EOFError, OSError):
                line = None
            try:
                loop.call_soon_threadsafe(self._queue.put_nowait, line)
            except RuntimeError:
                return
            if line is None:
                return
