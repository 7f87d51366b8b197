"""Optional native analysis backends."""

from .base import (
    BackendError,
    BackendOk,
    BackendOutcome,
    BackendState,
    BackendUnavailable,
    NativeBackend,
)
from .slither import SlitherBackend

__all__ = [
    "BackendError",
    "BackendOk",
    "BackendOutcome",
    "BackendState",
    "BackendUnavailable",
    "NativeBackend",
    "SlitherBackend",
]
