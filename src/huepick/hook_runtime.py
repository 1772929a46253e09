"""Run picker hooks so that one broken adapter never breaks a request."""

from __future__ import annotations

import inspect
from collections.abc import Iterator, Mapping
from typing import Any

import pluggy
from loguru import logger


class HookRuntime:
    """Call ``huepick`` hooks newest plugin first.

    An implementation that raises is reported to every ``on_error`` observer
    and then skipped as if it had returned ``None``. ``on_error`` observers are
    plain callables; their own failures are logged and dropped.
    """

    def __init__(self, plugin_manager: pluggy.PluginManager) -> None:
        self._plugin_manager = plugin_manager

    async def call_first(self, hook_name: str, **kwargs: Any) -> Any:
        """Return the first non-None result, awaiting async implementations."""

        for impl in self._implementations(hook_name):
            try:
                value = impl.function(**_bind(impl, kwargs))
                if inspect.isawaitable(value):
                    value = await value
            except Exception as error:
                self._report(hook_name, impl, error, kwargs)
                continue
            if value is not None:
                return value
        return None

    def call_first_sync(self, hook_name: str, **kwargs: Any) -> Any:
        for value in self._results_sync(hook_name, kwargs):
            if value is not None:
                return value
        return None

    def call_many_sync(self, hook_name: str, **kwargs: Any) -> list[Any]:
        return list(self._results_sync(hook_name, kwargs))

    def hook_report(self) -> dict[str, list[str]]:
        """Map each implemented hook to its adapters in registration order."""

        report: dict[str, list[str]] = {}
        for hook_name, caller in sorted(vars(self._plugin_manager.hook).items()):
            if hook_name.startswith("_") or not hasattr(caller, "get_hookimpls"):
                continue
            adapters = [_adapter(impl) for impl in caller.get_hookimpls()]
            if adapters:
                report[hook_name] = adapters
        return report

    def _results_sync(self, hook_name: str, kwargs: Mapping[str, Any]) -> Iterator[Any]:
        for impl in self._implementations(hook_name):
            try:
                value = impl.function(**_bind(impl, kwargs))
            except Exception as error:
                self._report(hook_name, impl, error, kwargs)
                continue
            if inspect.isawaitable(value):
                _discard(value)
                logger.warning("hook.async_not_supported hook={} adapter={}", hook_name, _adapter(impl))
                continue
            yield value

    def _report(self, hook_name: str, impl: Any, error: Exception, kwargs: Mapping[str, Any]) -> None:
        stage = f"{hook_name}:{_adapter(impl)}"
        logger.opt(exception=error).warning("hook.failed stage={}", stage)
        # Requests and window hosts are the same object; either names the context.
        context = {"stage": stage, "error": error, "request": kwargs.get("request", kwargs.get("host"))}
        for observer in self._implementations("on_error"):
            try:
                result = observer.function(**_bind(observer, context))
            except Exception:
                logger.opt(exception=True).warning(
                    "hook.on_error_failed stage={} adapter={}", stage, _adapter(observer)
                )
                continue
            if inspect.isawaitable(result):
                _discard(result)
                logger.warning("hook.async_not_supported hook=on_error adapter={}", _adapter(observer))

    def _implementations(self, hook_name: str) -> list[Any]:
        caller = getattr(self._plugin_manager.hook, hook_name, None)
        if caller is None or not hasattr(caller, "get_hookimpls"):
            return []
        return caller.get_hookimpls()[::-1]


def _bind(impl: Any, kwargs: Mapping[str, Any]) -> dict[str, Any]:
    return {name: kwargs[name] for name in impl.argnames if name in kwargs}


def _adapter(impl: Any) -> str:
    return impl.plugin_name or "<unknown>"


def _discard(awaitable: object) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()
