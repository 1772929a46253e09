"""Viewer identities accepted by the requesters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TypeAlias


@dataclass(frozen=True)
class ViewerHandle:
    """A viewer that can be shown a window.

    ``preferences`` is ``None`` when the viewer has no preference record at all,
    which is different from a record where a flag is switched off.
    """

    viewer_id: str
    preferences: Mapping[str, bool] | None = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class ActiveSession:
    """A connected client, possibly not controlling any viewer right now."""

    session_id: str
    viewer: ViewerHandle | None = None


Requester: TypeAlias = ActiveSession | ViewerHandle | None


def resolve_viewer(requester: Requester) -> ViewerHandle | None:
    match requester:
        case ViewerHandle():
            return requester
        case ActiveSession(viewer=viewer):
            return viewer
        case _:
            return None


PREF_NATIVE_INPUT = "prefer_native_input"
PREF_LARGE_BUTTONS = "large_buttons"
PREF_SWAPPED_BUTTONS = "swapped_buttons"


def read_viewer_preference(viewer: ViewerHandle, key: str) -> bool | None:
    if viewer.preferences is None:
        return None
    value = viewer.preferences.get(key)
    return None if value is None else bool(value)
