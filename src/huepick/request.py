"""Lifecycle of one color request, from creation to release."""

from __future__ import annotations

import asyncio
import inspect
import threading
import time
import uuid
import weakref
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any, TypeAlias

from apscheduler.schedulers.base import BaseScheduler
from loguru import logger

from huepick.color import BLACK, Color
from huepick.errors import InvalidColorError
from huepick.timeout import TimeoutGovernor, running_loop
from huepick.ui.protocol import (
    PickerAction,
    PreferenceReader,
    SessionRegistry,
    UiSession,
    build_dynamic_payload,
    build_static_payload,
    decode_action,
)
from huepick.viewer import ViewerHandle

CompletionCallback: TypeAlias = Callable[[Color | None], object]


class CloseReason(StrEnum):
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"
    DETACHED = "detached"
    TIMED_OUT = "timed_out"
    DISPOSED = "disposed"


_pending_callbacks: set[asyncio.Future[Any]] = set()


def dispatch_completion(callback: CompletionCallback, value: Color | None, *, log: Any = logger) -> None:
    """Invoke a completion callback without letting its failure escape."""

    try:
        result = callback(value)
    except Exception:
        log.exception("request.callback_failed")
        return
    if not inspect.isawaitable(result):
        return

    loop = running_loop()
    if loop is None:
        asyncio.run(_await_result(result))
        return
    future = asyncio.ensure_future(result)
    _pending_callbacks.add(future)

    def _done(fut: asyncio.Future[Any]) -> None:
        _pending_callbacks.discard(fut)
        if not fut.cancelled() and fut.exception() is not None:
            log.opt(exception=fut.exception()).error("request.callback_failed")

    future.add_done_callback(_done)


async def _await_result(result: Awaitable[Any]) -> None:
    try:
        await result
    except Exception:
        logger.exception("request.callback_failed")


class ColorRequest:
    """One color prompt.

    The first of submit, cancel, detach, timeout or disposal closes the request;
    every later attempt is a no-op. Closing releases the request right away:
    attached windows are closed first, then the timeout is disarmed, waiters
    wake up and the completion callback runs once with the final choice.

    A request created outside a running loop expires on the scheduler thread,
    so its callback runs there too. Waiters are always woken on their own loop.
    """

    def __init__(
        self,
        *,
        title: str,
        message: str,
        default: Color | str = BLACK,
        timeout_seconds: float = 0,
        autofocus: bool = True,
        registry: SessionRegistry | None = None,
        scheduler: BaseScheduler | None = None,
        callback: CompletionCallback | None = None,
        read_preference: PreferenceReader | None = None,
        on_release: Callable[[ColorRequest], None] | None = None,
        lead_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.request_id = uuid.uuid4().hex[:8]
        self._title = title
        self._message = message
        self._default = Color.parse(default)
        self._autofocus = autofocus
        self._choice: Color | None = None
        self._closed = False
        self._released = False
        self.close_reason: CloseReason | None = None

        self._registry = registry
        self._callback = callback
        self._read_preference = read_preference
        self._on_release = on_release
        self._bound_ui: weakref.ref[UiSession] | None = None
        self._state_lock = threading.Lock()
        self._released_event = asyncio.Event()
        self._waiter_loop: asyncio.AbstractEventLoop | None = None
        self._log = logger.bind(request=self.request_id)

        self.governor = TimeoutGovernor(timeout_seconds, lead_seconds=lead_seconds, clock=clock)
        if self.governor.enabled and scheduler is not None:
            self.governor.arm(scheduler, self._expire, job_id=f"huepick.timeout.{self.request_id}")

    def __repr__(self) -> str:
        return f"<ColorRequest {self.request_id} title={self._title!r} closed={self._closed}>"

    @property
    def title(self) -> str:
        return self._title

    @property
    def message(self) -> str:
        return self._message

    @property
    def default(self) -> Color:
        return self._default

    @property
    def autofocus(self) -> bool:
        return self._autofocus

    @property
    def timeout_seconds(self) -> float:
        return self.governor.timeout_seconds

    @property
    def choice(self) -> Color | None:
        return self._choice

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def released(self) -> bool:
        return self._released

    @property
    def bound_ui(self) -> UiSession | None:
        if self._bound_ui is None:
            return None
        session = self._bound_ui()
        if session is None or not session.is_open:
            return None
        return session

    # === Transitions ===

    def submit(self, value: Color | str) -> bool:
        color = Color.parse(value)
        if not self._claim(CloseReason.SUBMITTED, choice=color):
            return False
        self._release()
        return True

    def cancel(self) -> bool:
        if not self._claim(CloseReason.CANCELLED):
            return False
        self._release()
        return True

    def detach(self, viewer: ViewerHandle | None = None) -> bool:
        """The remote side closed its window without answering."""

        if not self._claim(CloseReason.DETACHED):
            return False
        self._log.debug("request.detached viewer={}", viewer.viewer_id if viewer else "-")
        self._release()
        return True

    def force_dispose(self, reason: CloseReason = CloseReason.DISPOSED) -> None:
        self._claim(reason)
        self._release()

    def _expire(self) -> None:
        self.force_dispose(CloseReason.TIMED_OUT)

    def _claim(self, reason: CloseReason, *, choice: Color | None = None) -> bool:
        with self._state_lock:
            if self._closed:
                return False
            self._choice = choice
            self._closed = True
            self.close_reason = reason
        self._log.info("request.closed reason={} choice={}", reason, choice)
        return True

    def _release(self) -> None:
        with self._state_lock:
            if self._released:
                return
            self._released = True

        self._detach_ui()
        self.governor.disarm()
        self._wake_waiters()

        callback, self._callback = self._callback, None
        if callback is not None:
            dispatch_completion(callback, self._choice, log=self._log)

        if self._on_release is not None:
            try:
                self._on_release(self)
            except Exception:
                self._log.exception("request.on_release_failed")

    def _detach_ui(self) -> None:
        session = self.bound_ui
        self._bound_ui = None
        try:
            if self._registry is not None:
                closed = self._registry.close_all(self)
                self._log.debug("request.ui_detached sessions={}", closed)
            elif session is not None:
                session.close()
        except Exception:
            self._log.opt(exception=True).debug("request.ui_detach_failed")

    # === Wait/notify ===

    async def wait(self) -> Color | None:
        """Suspend until the request is released and return the final choice."""

        self._waiter_loop = asyncio.get_running_loop()
        if not self._released:
            await self._released_event.wait()
        return self._choice

    def _wake_waiters(self) -> None:
        loop = self._waiter_loop
        # asyncio.Event is not thread-safe; expiry may release from a scheduler thread.
        if loop is not None and loop.is_running() and running_loop() is not loop:
            loop.call_soon_threadsafe(self._released_event.set)
            return
        self._released_event.set()

    # === UI sync ===

    def ui_interact(self, viewer: ViewerHandle, session: UiSession | None = None) -> UiSession | None:
        """Attach the request to a window for ``viewer``, reusing a live one."""

        if self._closed or self._registry is None:
            return None
        attached = self._registry.try_update(viewer, self, session or self.bound_ui)
        if attached is None:
            attached = self._registry.open(viewer, self)
            attached.set_autoupdate(self.governor.enabled)
        self._bound_ui = weakref.ref(attached)
        return attached

    def ui_static_data(self, viewer: ViewerHandle) -> dict[str, Any]:
        return build_static_payload(self, viewer, self._read_preference).dump()

    def ui_data(self, viewer: ViewerHandle) -> dict[str, Any]:
        return build_dynamic_payload(self.governor.progress()).dump()

    def ui_act(self, action: str, params: Mapping[str, Any], viewer: ViewerHandle) -> bool:
        try:
            decoded = decode_action(action, params)
        except InvalidColorError as exc:
            self._log.warning("request.invalid_entry viewer={} entry={!r}", viewer.viewer_id, exc.raw)
            return False
        if decoded is None:
            return False
        if decoded.kind is PickerAction.CANCEL:
            self.cancel()
        elif decoded.entry is not None:
            self.submit(decoded.entry)
        return True

    def ui_close(self, viewer: ViewerHandle) -> None:
        self.detach(viewer)
