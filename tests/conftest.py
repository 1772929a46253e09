from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from apscheduler.jobstores.base import JobLookupError

from huepick.config import Settings
from huepick.runtime import PickerRuntime
from huepick.viewer import ViewerHandle


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeJob:
    def __init__(self, func: Any, trigger: Any, job_id: str | None) -> None:
        self.func = func
        self.trigger = trigger
        self.id = job_id or "job"
        self.removed = False

    def remove(self) -> None:
        if self.removed:
            raise JobLookupError(self.id)
        self.removed = True


class FakeScheduler:
    running = False

    def __init__(self) -> None:
        self.jobs: list[FakeJob] = []

    def add_job(self, func: Any, trigger: Any = None, id: str | None = None, **_kwargs: Any) -> FakeJob:
        job = FakeJob(func, trigger, id)
        self.jobs.append(job)
        return job


class RecordingRenderer:
    def __init__(self) -> None:
        self.renders: list[tuple[str, dict[str, Any] | None, dict[str, Any]]] = []
        self.closed: list[str] = []

    def render(self, window: Any, static_data: dict[str, Any] | None, data: dict[str, Any]) -> None:
        self.renders.append((window.window_id, static_data, data))

    def close(self, window: Any) -> None:
        self.closed.append(window.window_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    for name in ("HUEPICK_TIMEOUT_SECONDS", "HUEPICK_ASYNC_TIMEOUT_SECONDS", "HUEPICK_DEFAULT_COLOR"):
        monkeypatch.delenv(name, raising=False)
    for name in ("HUEPICK_AUTOFOCUS", "HUEPICK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return Settings(_env_file=None)


@pytest.fixture
def viewer() -> ViewerHandle:
    return ViewerHandle("alice")


@pytest.fixture
def runtime(settings: Settings, renderer: RecordingRenderer) -> Iterator[PickerRuntime]:
    with PickerRuntime(settings, renderer=renderer) as picker:
        yield picker
