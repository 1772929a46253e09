import asyncio

import pytest

from huepick.color import Color
from huepick.config import Settings
from huepick.errors import InvalidColorError
from huepick.hookspecs import hookimpl
from huepick.request import CloseReason
from huepick.runtime import PickerRuntime
from huepick.viewer import PREF_NATIVE_INPUT, ActiveSession, ViewerHandle


class NativeAnswerPlugin:
    def __init__(self, answer: str | None) -> None:
        self.answer = answer
        self.prompts: list[tuple[str, str, Color]] = []

    @hookimpl
    async def native_color_prompt(self, viewer, message, title, default):
        self.prompts.append((message, title, default))
        return self.answer


class ClosedRecorder:
    def __init__(self) -> None:
        self.closed: list[tuple[str, CloseReason]] = []

    @hookimpl
    def on_request_closed(self, request, reason):
        self.closed.append((request.request_id, reason))


class ErrorRecorder:
    def __init__(self) -> None:
        self.stages: list[str] = []

    @hookimpl
    def on_error(self, stage, error, request):
        self.stages.append(stage)


class BrokenPreferencePlugin:
    @hookimpl
    def read_preference(self, viewer, key):
        raise RuntimeError("preference store offline")


class SwallowSubmitPlugin:
    @hookimpl
    def pre_action(self, host, action, params, viewer):
        return True if action == "submit" else None


NATIVE_VIEWER = ViewerHandle("native", preferences={PREF_NATIVE_INPUT: True})


def _window(runtime: PickerRuntime, viewer: ViewerHandle):
    windows = runtime.registry.windows_of(viewer)
    assert len(windows) == 1
    return windows[0]


@pytest.mark.asyncio
async def test_pick_color_without_viewer_returns_none(runtime: PickerRuntime) -> None:
    assert await runtime.pick_color(None, "msg", "title") is None
    assert await runtime.pick_color(ActiveSession("s1"), "msg", "title") is None
    assert runtime.pick_color_async(None, "msg", "title") is None
    assert runtime.registry.windows == []


@pytest.mark.asyncio
async def test_pick_color_returns_submitted_color(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    task = asyncio.create_task(runtime.pick_color(viewer, "Pick a color", "Paint", "#000000"))
    await asyncio.sleep(0)

    _window(runtime, viewer).act("submit", {"entry": "#FF00FF"})

    assert await task == Color("#ff00ff")
    assert runtime.live_requests == []
    assert runtime.registry.windows == []


@pytest.mark.asyncio
async def test_pick_color_resolves_active_session(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    task = asyncio.create_task(runtime.pick_color(ActiveSession("s1", viewer), "msg", "title"))
    await asyncio.sleep(0)

    _window(runtime, viewer).act("cancel")

    assert await task is None


@pytest.mark.asyncio
async def test_cancelled_pick_disposes_request(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    recorder = ClosedRecorder()
    runtime.register_plugin(recorder)
    task = asyncio.create_task(runtime.pick_color(viewer, "msg", "title"))
    await asyncio.sleep(0)
    request = runtime.live_requests[0]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert request.close_reason is CloseReason.DISPOSED
    assert recorder.closed == [(request.request_id, CloseReason.DISPOSED)]
    assert runtime.registry.windows == []


@pytest.mark.asyncio
async def test_pick_color_async_delivers_to_callback(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    values: list[Color | None] = []

    request = runtime.pick_color_async(viewer, "msg", "title", callback=values.append)

    assert request is not None
    assert values == []
    _window(runtime, viewer).act("submit", {"entry": "#0a0b0c"})
    assert values == [Color("#0a0b0c")]
    assert await request.wait() == Color("#0a0b0c")


@pytest.mark.asyncio
async def test_pick_color_async_times_out(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    done = asyncio.Event()
    values: list[Color | None] = []

    def callback(value: Color | None) -> None:
        values.append(value)
        done.set()

    request = runtime.pick_color_async(viewer, "msg", "title", callback=callback, timeout=0.2)

    await asyncio.wait_for(done.wait(), timeout=5)
    assert values == [None]
    assert request.close_reason is CloseReason.TIMED_OUT
    assert runtime.registry.windows == []


def test_async_prompt_uses_async_timeout_default(settings: Settings, viewer: ViewerHandle) -> None:
    with PickerRuntime(settings) as runtime:
        request = runtime.pick_color_async(viewer, "msg", "title")
        assert request.timeout_seconds == settings.async_timeout_seconds
        assert request.governor.armed is True


def test_exit_disposes_open_requests(settings: Settings, viewer: ViewerHandle) -> None:
    values: list[Color | None] = []
    with PickerRuntime(settings) as runtime:
        request = runtime.pick_color_async(viewer, "msg", "title", callback=values.append, timeout=0)

    assert request.close_reason is CloseReason.DISPOSED
    assert values == [None]
    assert runtime.scheduler.running is False


def test_settings_supply_defaults(viewer: ViewerHandle) -> None:
    settings = Settings(_env_file=None, default_color="#123", autofocus=False)
    with PickerRuntime(settings) as runtime:
        request = runtime.pick_color_async(viewer, "msg", "title", timeout=0)

        assert request.default == Color("#112233")
        assert request.autofocus is False
        assert runtime.registry.windows_of(viewer)[0].static_data["autofocus"] is False


@pytest.mark.asyncio
async def test_invalid_default_raises(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    with pytest.raises(InvalidColorError):
        await runtime.pick_color(viewer, "msg", "title", "#12")


@pytest.mark.asyncio
async def test_native_preference_skips_window(runtime: PickerRuntime) -> None:
    plugin = NativeAnswerPlugin("abc")
    runtime.register_plugin(plugin)

    result = await runtime.pick_color(NATIVE_VIEWER, "Pick", "Paint", "#ffffff")

    assert result == Color("#aabbcc")
    assert plugin.prompts == [("Pick", "Paint", Color("#ffffff"))]
    assert runtime.registry.windows == []
    assert runtime.live_requests == []


@pytest.mark.asyncio
async def test_native_async_prompt_delivers_to_callback(runtime: PickerRuntime) -> None:
    runtime.register_plugin(NativeAnswerPlugin("#010203"))
    received = asyncio.Event()
    values: list[Color | None] = []

    def callback(value: Color | None) -> None:
        values.append(value)
        received.set()

    assert runtime.pick_color_async(NATIVE_VIEWER, "msg", "title", callback=callback) is None

    await asyncio.wait_for(received.wait(), timeout=1)
    assert values == [Color("#010203")]


@pytest.mark.asyncio
async def test_native_invalid_answer_returns_none(runtime: PickerRuntime) -> None:
    runtime.register_plugin(NativeAnswerPlugin("not a color"))

    assert await runtime.pick_color(NATIVE_VIEWER, "msg", "title") is None


@pytest.mark.asyncio
async def test_pre_action_hook_can_handle_action(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    runtime.register_plugin(SwallowSubmitPlugin())
    request = runtime.pick_color_async(viewer, "msg", "title", timeout=0)
    window = _window(runtime, viewer)

    assert window.act("submit", {"entry": "#ffffff"}) is True
    assert request.closed is False
    assert window.act("cancel") is True
    assert request.close_reason is CloseReason.CANCELLED


def test_failing_preference_plugin_is_isolated(runtime: PickerRuntime) -> None:
    errors = ErrorRecorder()
    runtime.register_plugin(errors)
    runtime.register_plugin(BrokenPreferencePlugin())

    assert runtime.prefers_native(NATIVE_VIEWER) is True
    assert runtime.read_preference(ViewerHandle("plain"), PREF_NATIVE_INPUT) is None
    assert len(errors.stages) == 2
    assert all(stage.startswith("read_preference:") for stage in errors.stages)


def test_request_closed_hook_sees_reason(runtime: PickerRuntime, viewer: ViewerHandle) -> None:
    recorder = ClosedRecorder()
    runtime.register_plugin(recorder)

    request = runtime.pick_color_async(viewer, "msg", "title", timeout=0)
    _window(runtime, viewer).close()

    assert recorder.closed == [(request.request_id, CloseReason.DETACHED)]
    assert runtime.live_requests == []


def test_hook_report_lists_builtin(runtime: PickerRuntime) -> None:
    report = runtime.hooks.hook_report()

    assert report["read_preference"] == ["builtin"]
    assert report["native_color_prompt"] == ["builtin"]


@pytest.mark.asyncio
async def test_timeout_fires_without_context_manager(settings: Settings, viewer: ViewerHandle) -> None:
    runtime = PickerRuntime(settings)
    try:
        assert runtime.scheduler.running is False

        result = await asyncio.wait_for(runtime.pick_color(viewer, "msg", "title", timeout=0.2), timeout=5)

        assert result is None
        assert runtime.scheduler.running is True
        assert runtime.live_requests == []
    finally:
        runtime.close()
    assert runtime.scheduler.running is False


def test_untimed_request_leaves_scheduler_stopped(settings: Settings, viewer: ViewerHandle) -> None:
    runtime = PickerRuntime(settings)

    request = runtime.pick_color_async(viewer, "msg", "title", timeout=0)

    assert request is not None
    assert runtime.scheduler.running is False
    runtime.close()
    assert request.close_reason is CloseReason.DISPOSED
