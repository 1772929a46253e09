"""Requesters that open color requests and resolve them for callers."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Coroutine, Iterable
from contextlib import suppress
from typing import Any

import pluggy
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from loguru import logger

from huepick import builtin
from huepick.color import Color
from huepick.config import Settings, get_settings
from huepick.errors import InvalidColorError
from huepick.hook_runtime import HookRuntime
from huepick.hookspecs import HUEPICK_HOOK_NAMESPACE, HuepickHookSpecs
from huepick.request import ColorRequest, CompletionCallback, dispatch_completion
from huepick.timeout import running_loop
from huepick.ui.manager import Renderer, UiManager
from huepick.ui.protocol import SessionRegistry
from huepick.viewer import PREF_NATIVE_INPUT, Requester, ViewerHandle, resolve_viewer


class PickerRuntime:
    """Owns the scheduler, the hooks and the window registry shared by all requests."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        registry: SessionRegistry | None = None,
        renderer: Renderer | None = None,
        scheduler: BaseScheduler | None = None,
        plugins: Iterable[object] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self._plugin_manager = pluggy.PluginManager(HUEPICK_HOOK_NAMESPACE)
        self._plugin_manager.add_hookspecs(HuepickHookSpecs)
        self._plugin_manager.register(builtin.plugin, name="builtin")
        for plugin in plugins:
            self.register_plugin(plugin)
        self.hooks = HookRuntime(self._plugin_manager)
        self.scheduler = scheduler or self._default_scheduler()
        if registry is None:
            registry = UiManager(
                hooks=self.hooks,
                renderer=renderer,
                interface=self.settings.interface_name,
                refresh_interval_seconds=self.settings.refresh_interval_seconds,
            )
        self.registry: SessionRegistry = registry
        self._clock = clock
        self._requests: dict[str, ColorRequest] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def _default_scheduler(self) -> BaseScheduler:
        return BackgroundScheduler(daemon=True)

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        self._plugin_manager.register(plugin, name=name)

    def __enter__(self) -> PickerRuntime:
        if not self.scheduler.running:
            self.scheduler.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Dispose live requests and stop the scheduler."""

        self.dispose_all()
        if self.scheduler.running:
            with suppress(Exception):
                self.scheduler.shutdown(wait=False)

    async def __aenter__(self) -> PickerRuntime:
        self.__enter__()
        if isinstance(self.registry, UiManager):
            await self.registry.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if isinstance(self.registry, UiManager):
            await self.registry.stop()
        self.__exit__(exc_type, exc_val, exc_tb)

    @property
    def live_requests(self) -> list[ColorRequest]:
        return list(self._requests.values())

    def read_preference(self, viewer: ViewerHandle, key: str) -> bool | None:
        return self.hooks.call_first_sync("read_preference", viewer=viewer, key=key)

    def prefers_native(self, viewer: ViewerHandle) -> bool:
        return bool(self.read_preference(viewer, PREF_NATIVE_INPUT))

    async def pick_color(
        self,
        requester: Requester,
        message: str,
        title: str,
        default: Color | str | None = None,
        *,
        timeout: float | None = None,
        autofocus: bool | None = None,
    ) -> Color | None:
        """Show a color prompt and wait for the answer.

        Returns ``None`` when the requester has no viewer, or when the prompt was
        cancelled, closed by the viewer, timed out or disposed.
        """

        viewer = resolve_viewer(requester)
        if viewer is None:
            logger.debug("pick.no_viewer requester={!r}", requester)
            return None
        default_color = self._default_color(default)
        if self.prefers_native(viewer):
            return await self._native_prompt(viewer, message, title, default_color)

        request = self.open_request(
            viewer,
            message,
            title,
            default_color,
            timeout=self.settings.timeout_seconds if timeout is None else timeout,
            autofocus=autofocus,
        )
        try:
            return await request.wait()
        finally:
            request.force_dispose()

    def pick_color_async(
        self,
        requester: Requester,
        message: str,
        title: str,
        default: Color | str | None = None,
        *,
        callback: CompletionCallback | None = None,
        timeout: float | None = None,
        autofocus: bool | None = None,
    ) -> ColorRequest | None:
        """Show a color prompt and return at once; ``callback`` receives the answer."""

        viewer = resolve_viewer(requester)
        if viewer is None:
            logger.debug("pick.no_viewer requester={!r}", requester)
            return None
        default_color = self._default_color(default)
        if self.prefers_native(viewer):
            self._spawn(self._native_then_callback(viewer, message, title, default_color, callback))
            return None

        return self.open_request(
            viewer,
            message,
            title,
            default_color,
            timeout=self.settings.async_timeout_seconds if timeout is None else timeout,
            autofocus=autofocus,
            callback=callback,
        )

    def open_request(
        self,
        viewer: ViewerHandle,
        message: str,
        title: str,
        default: Color | str,
        *,
        timeout: float = 0,
        autofocus: bool | None = None,
        callback: CompletionCallback | None = None,
    ) -> ColorRequest:
        if timeout > 0 and not self.scheduler.running:
            # Jobs added to a stopped scheduler stay pending and never fire.
            self.scheduler.start()
            logger.debug("runtime.scheduler_started")
        request = ColorRequest(
            title=title,
            message=message,
            default=default,
            timeout_seconds=timeout,
            autofocus=self.settings.autofocus if autofocus is None else autofocus,
            registry=self.registry,
            scheduler=self.scheduler,
            callback=callback,
            read_preference=self.read_preference,
            on_release=self._on_release,
            lead_seconds=self.settings.progress_lead_seconds,
            clock=self._clock,
        )
        self._requests[request.request_id] = request
        if request.released:
            self._requests.pop(request.request_id, None)
            return request
        logger.info(
            "request.opened id={} viewer={} timeout={} title={!r}",
            request.request_id,
            viewer.viewer_id,
            request.timeout_seconds,
            title,
        )
        request.ui_interact(viewer)
        return request

    def dispose_all(self) -> int:
        requests = self.live_requests
        for request in requests:
            request.force_dispose()
        return len(requests)

    def _on_release(self, request: ColorRequest) -> None:
        self._requests.pop(request.request_id, None)
        self.hooks.call_many_sync("on_request_closed", request=request, reason=request.close_reason)

    def _default_color(self, default: Color | str | None) -> Color:
        return Color.parse(self.settings.default_color if default is None else default)

    async def _native_prompt(self, viewer: ViewerHandle, message: str, title: str, default: Color) -> Color | None:
        answer = await self.hooks.call_first(
            "native_color_prompt", viewer=viewer, message=message, title=title, default=default
        )
        if answer is None:
            return None
        try:
            return Color.parse(answer)
        except InvalidColorError:
            logger.warning("pick.native_invalid viewer={} answer={!r}", viewer.viewer_id, answer)
            return None

    async def _native_then_callback(
        self,
        viewer: ViewerHandle,
        message: str,
        title: str,
        default: Color,
        callback: CompletionCallback | None,
    ) -> None:
        value = await self._native_prompt(viewer, message, title, default)
        if callback is not None:
            dispatch_completion(callback, value)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = running_loop()
        if loop is None:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
