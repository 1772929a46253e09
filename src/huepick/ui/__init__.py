"""Render-boundary contract and the in-process window manager."""

from huepick.ui.manager import Renderer, UiManager, UiWindow
from huepick.ui.protocol import (
    DynamicPayload,
    PickerAction,
    SessionRegistry,
    StaticPayload,
    UiHost,
    UiSession,
    build_dynamic_payload,
    build_static_payload,
    decode_action,
)

__all__ = [
    "DynamicPayload",
    "PickerAction",
    "Renderer",
    "SessionRegistry",
    "StaticPayload",
    "UiHost",
    "UiManager",
    "UiSession",
    "UiWindow",
    "build_dynamic_payload",
    "build_static_payload",
    "decode_action",
]
