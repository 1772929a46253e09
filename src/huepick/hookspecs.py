"""Pluggy hook namespace and picker hook specifications."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from huepick.color import Color
    from huepick.request import CloseReason, ColorRequest
    from huepick.ui.protocol import UiHost
    from huepick.viewer import ViewerHandle

HUEPICK_HOOK_NAMESPACE = "huepick"
hookspec = pluggy.HookspecMarker(HUEPICK_HOOK_NAMESPACE)
hookimpl = pluggy.HookimplMarker(HUEPICK_HOOK_NAMESPACE)


class HuepickHookSpecs:
    """Hook contract for the collaborators around a color request."""

    @hookspec(firstresult=True)
    def read_preference(self, viewer: ViewerHandle, key: str) -> bool | None:
        """Read one viewer preference flag. ``None`` means the viewer has no preference record."""

    @hookspec(firstresult=True)
    def native_color_prompt(self, viewer: ViewerHandle, message: str, title: str, default: Color) -> Color | str | None:
        """Ask for a color without a prompt window."""

    @hookspec(firstresult=True)
    def pre_action(self, host: UiHost, action: str, params: Mapping[str, Any], viewer: ViewerHandle) -> bool | None:
        """Inspect an inbound window action first. A truthy result marks it handled."""

    @hookspec
    def on_request_closed(self, request: ColorRequest, reason: CloseReason) -> None:
        """Observe a request after it has been released."""

    @hookspec
    def on_error(self, stage: str, error: Exception, request: object | None) -> None:
        """Observe adapter failures from any stage."""
