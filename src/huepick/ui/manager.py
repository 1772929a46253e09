"""In-process session registry and render boundary."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

from huepick.hook_runtime import HookRuntime
from huepick.ui.protocol import UiHost
from huepick.viewer import ViewerHandle


class Renderer(Protocol):
    """Client-side sink for window payloads."""

    def render(self, window: UiWindow, static_data: dict[str, Any] | None, data: dict[str, Any]) -> None: ...

    def close(self, window: UiWindow) -> None: ...


@dataclass(eq=False)
class UiWindow:
    """One open window showing ``host`` to ``viewer``."""

    window_id: str
    viewer: ViewerHandle
    host: UiHost
    interface: str
    manager: UiManager = field(repr=False)
    autoupdate: bool = False
    is_open: bool = True
    static_data: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)

    def set_autoupdate(self, enabled: bool) -> None:
        self.autoupdate = enabled

    def send_full_update(self) -> None:
        if not self.is_open:
            return
        self.static_data = self.host.ui_static_data(self.viewer)
        self.data = self.host.ui_data(self.viewer)
        self.manager.render(self, self.static_data, self.data)

    def send_update(self) -> None:
        if not self.is_open:
            return
        self.data = self.host.ui_data(self.viewer)
        self.manager.render(self, None, self.data)

    def act(self, action: str, params: Mapping[str, Any] | None = None) -> bool:
        return self.manager.dispatch_action(self, action, params or {})

    def close(self) -> None:
        """Close the window and tell the host its viewer is gone."""

        if not self.is_open:
            return
        self.is_open = False
        self.manager.forget(self)
        self.host.ui_close(self.viewer)


class UiManager:
    """Track open windows, push payloads to a renderer and route actions back."""

    def __init__(
        self,
        *,
        hooks: HookRuntime | None = None,
        renderer: Renderer | None = None,
        interface: str = "ColorPickerModal",
        refresh_interval_seconds: float = 1.0,
    ) -> None:
        self.hooks = hooks
        self.renderer = renderer
        self.interface = interface
        self.refresh_interval_seconds = refresh_interval_seconds
        self._windows: dict[tuple[str, int], UiWindow] = {}
        self._ids = itertools.count(1)
        self._task: asyncio.Task[None] | None = None

    @property
    def windows(self) -> list[UiWindow]:
        return list(self._windows.values())

    def windows_for(self, host: UiHost) -> list[UiWindow]:
        return [window for window in self._windows.values() if window.host is host]

    def windows_of(self, viewer: ViewerHandle) -> list[UiWindow]:
        return [window for window in self._windows.values() if window.viewer.viewer_id == viewer.viewer_id]

    # === SessionRegistry ===

    def try_update(self, viewer: ViewerHandle, host: UiHost, session: UiWindow | None = None) -> UiWindow | None:
        window = self._windows.get(self._key(viewer, host))
        if window is None and _compatible(session, viewer, host):
            window = session
        if window is None or not window.is_open:
            return None
        window.send_full_update()
        return window

    def open(self, viewer: ViewerHandle, host: UiHost) -> UiWindow:
        existing = self.try_update(viewer, host)
        if existing is not None:
            return existing
        window = UiWindow(
            window_id=f"w{next(self._ids)}",
            viewer=viewer,
            host=host,
            interface=self.interface,
            manager=self,
        )
        self._windows[self._key(viewer, host)] = window
        logger.debug("ui.opened window={} viewer={} interface={}", window.window_id, viewer.viewer_id, self.interface)
        window.send_full_update()
        return window

    def close_all(self, host: UiHost) -> int:
        windows = self.windows_for(host)
        for window in windows:
            window.close()
        return len(windows)

    # === Render boundary ===

    def render(self, window: UiWindow, static_data: dict[str, Any] | None, data: dict[str, Any]) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer.render(window, static_data, data)
        except Exception:
            logger.exception("ui.render_failed window={}", window.window_id)

    def forget(self, window: UiWindow) -> None:
        key = self._key(window.viewer, window.host)
        if self._windows.get(key) is window:
            del self._windows[key]
        logger.debug("ui.closed window={} viewer={}", window.window_id, window.viewer.viewer_id)
        if self.renderer is None:
            return
        try:
            self.renderer.close(window)
        except Exception:
            logger.exception("ui.render_close_failed window={}", window.window_id)

    def dispatch_action(self, window: UiWindow, action: str, params: Mapping[str, Any]) -> bool:
        if not window.is_open:
            return False
        if self.hooks is not None:
            handled = self.hooks.call_first_sync(
                "pre_action", host=window.host, action=action, params=params, viewer=window.viewer
            )
            if handled:
                logger.debug("ui.action_handled_by_hook window={} action={}", window.window_id, action)
                return True
        return window.host.ui_act(action, params, window.viewer)

    def refresh(self) -> int:
        """Push dynamic data to every autoupdate window."""

        refreshed = 0
        for window in self.windows:
            if window.is_open and window.autoupdate:
                window.send_update()
                refreshed += 1
        return refreshed

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval_seconds)
            try:
                self.refresh()
            except Exception:
                logger.exception("ui.refresh_failed")

    @staticmethod
    def _key(viewer: ViewerHandle, host: UiHost) -> tuple[str, int]:
        return viewer.viewer_id, id(host)


def _compatible(session: UiWindow | None, viewer: ViewerHandle, host: UiHost) -> bool:
    # A session is only reused for the same viewer looking at the same host.
    return session is not None and session.is_open and session.viewer == viewer and session.host is host
