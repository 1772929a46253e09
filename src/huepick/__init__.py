"""huepick - ask a viewer for a color through a transient prompt window."""

from .color import Color
from .config import Settings, get_settings
from .errors import ConfigurationError, HuepickError, InvalidColorError
from .request import CloseReason, ColorRequest
from .runtime import PickerRuntime
from .timeout import TimeoutGovernor
from .viewer import ActiveSession, Requester, ViewerHandle, resolve_viewer

__version__ = "0.1.0"

__all__ = [
    "ActiveSession",
    "CloseReason",
    "Color",
    "ColorRequest",
    "ConfigurationError",
    "HuepickError",
    "InvalidColorError",
    "PickerRuntime",
    "Requester",
    "Settings",
    "TimeoutGovernor",
    "ViewerHandle",
    "get_settings",
    "resolve_viewer",
]
