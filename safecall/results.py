"""The two result shapes a caller of capture() ever receives."""

from dataclasses import dataclass
from typing import Any, Optional, Union

from safecall.isolation.types import TraceFrame


@dataclass(frozen=True)
class Ok:
    value: Any

    @property
    def is_ok(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True)
class Err:
    """A failed capture.

    ``reason`` is the returned value that failed the ok-tuple check, the
    raised exception, a Termination, or a TimeoutExceeded marker.
    ``trace`` is only kept when the caller asked for stack traces.
    """

    reason: Any
    trace: Optional[tuple[TraceFrame, ...]] = None

    @property
    def is_ok(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "reason": repr(self.reason),
            "trace": [frame.format() for frame in self.trace] if self.trace else None,
        }


Result = Union[Ok, Err]


@dataclass(frozen=True)
class TimeoutExceeded:
    """Marker reason for an attempt that outlived its deadline."""

    seconds: float

    def __str__(self) -> str:
        return f"timed out after {self.seconds:g}s"
