"""Contract between a color request and the render boundary.

The render boundary pulls two payloads from a host: the static payload once per
attach and the dynamic payload on every refresh. User actions travel back as an
action name plus parameters.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from huepick.color import Color
from huepick.viewer import PREF_LARGE_BUTTONS, PREF_SWAPPED_BUTTONS, ViewerHandle

if TYPE_CHECKING:
    from huepick.request import ColorRequest

PreferenceReader: TypeAlias = Callable[[ViewerHandle, str], bool | None]


class UiSession(Protocol):
    """A live window showing one host to one viewer."""

    viewer: ViewerHandle

    @property
    def is_open(self) -> bool: ...

    def set_autoupdate(self, enabled: bool) -> None: ...

    def close(self) -> None: ...


class UiHost(Protocol):
    """What the render boundary calls on the object it displays."""

    def ui_static_data(self, viewer: ViewerHandle) -> dict[str, Any]: ...

    def ui_data(self, viewer: ViewerHandle) -> dict[str, Any]: ...

    def ui_act(self, action: str, params: Mapping[str, Any], viewer: ViewerHandle) -> bool: ...

    def ui_close(self, viewer: ViewerHandle) -> None: ...


class SessionRegistry(Protocol):
    """Session capabilities a request needs from the render boundary."""

    def try_update(self, viewer: ViewerHandle, host: UiHost, session: UiSession | None = None) -> UiSession | None: ...

    def open(self, viewer: ViewerHandle, host: UiHost) -> UiSession: ...

    def close_all(self, host: UiHost) -> int: ...


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StaticPayload(_Payload):
    autofocus: bool
    title: str
    default_color: str
    message: str
    large_buttons: bool
    swapped_buttons: bool


class DynamicPayload(_Payload):
    timeout: float | None = None


def _flag(read_preference: PreferenceReader | None, viewer: ViewerHandle, key: str) -> bool:
    # No preference record at all counts as opted in.
    value = read_preference(viewer, key) if read_preference is not None else None
    return True if value is None else bool(value)


def build_static_payload(
    request: ColorRequest,
    viewer: ViewerHandle,
    read_preference: PreferenceReader | None = None,
) -> StaticPayload:
    return StaticPayload(
        autofocus=request.autofocus,
        title=request.title,
        default_color=str(request.default),
        message=request.message,
        large_buttons=_flag(read_preference, viewer, PREF_LARGE_BUTTONS),
        swapped_buttons=_flag(read_preference, viewer, PREF_SWAPPED_BUTTONS),
    )


def build_dynamic_payload(progress: float | None) -> DynamicPayload:
    return DynamicPayload(timeout=progress)


class PickerAction(StrEnum):
    SUBMIT = "submit"
    CANCEL = "cancel"


@dataclass(frozen=True)
class DecodedAction:
    kind: PickerAction
    entry: Color | None = None


def decode_action(action: str, params: Mapping[str, Any]) -> DecodedAction | None:
    """Decode an inbound action, or return ``None`` when it is not a picker action.

    Raises:
        InvalidColorError: ``submit`` carried a missing or malformed ``entry``.
    """

    try:
        kind = PickerAction(action)
    except ValueError:
        return None
    if kind is PickerAction.SUBMIT:
        return DecodedAction(kind, Color.parse(params.get("entry")))
    return DecodedAction(kind)
