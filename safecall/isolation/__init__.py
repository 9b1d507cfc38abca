"""Isolated execution units and the deadline guard."""

from safecall.isolation.limits import ResourceLimits, apply_resource_limits
from safecall.isolation.runner import ProcessRunner, ThreadRunner, get_runner
from safecall.isolation.types import (
    CallSpec,
    ForeignError,
    Raised,
    RawOutcome,
    Returned,
    Terminated,
    Termination,
    TraceFrame,
    UnpicklableResult,
)

__all__ = [
    "ResourceLimits",
    "apply_resource_limits",
    "ProcessRunner",
    "ThreadRunner",
    "get_runner",
    "CallSpec",
    "ForeignError",
    "Raised",
    "RawOutcome",
    "Returned",
    "Terminated",
    "Termination",
    "TraceFrame",
    "UnpicklableResult",
]
