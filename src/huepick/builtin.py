"""Builtin hook implementations."""

from __future__ import annotations

import asyncio

from rich import get_console
from rich.markup import escape
from rich.prompt import Prompt

from huepick.color import Color
from huepick.hookspecs import hookimpl
from huepick.viewer import ViewerHandle, read_viewer_preference


class BuiltinPickerPlugin:
    @hookimpl
    def read_preference(self, viewer: ViewerHandle, key: str) -> bool | None:
        return read_viewer_preference(viewer, key)

    @hookimpl
    async def native_color_prompt(self, viewer: ViewerHandle, message: str, title: str, default: Color) -> str | None:
        _ = viewer
        prompt = f"[bold]{escape(title)}[/bold] {escape(message)}"
        answer = await asyncio.to_thread(Prompt.ask, prompt, default=str(default), console=get_console())
        return answer.strip() or None


plugin = BuiltinPickerPlugin()
