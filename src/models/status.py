"""
Load/readiness status models shared by the loader, camera and dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LoadState(str, Enum):
    """Lifecycle state of a startup component."""
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"


@dataclass
class ComponentStatus:
    """
    Current state of one component plus a human-readable message.

    Attributes:
        state: loading, error or ready.
        message: Error text shown to the user (None unless state is error).
    """
    state: LoadState = LoadState.LOADING
    message: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.state == LoadState.READY

    @property
    def is_error(self) -> bool:
        return self.state == LoadState.ERROR

    def set_ready(self) -> None:
        self.state = LoadState.READY
        self.message = None

    def set_error(self, message: str) -> None:
        self.state = LoadState.ERROR
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, "message": self.message}
