"""Result formatter: the boundary between capture() and its caller.

Decides whether a captured trace reaches the caller and reports terminal
failures to the logging collaborator.
"""

from dataclasses import replace
from typing import Any, Optional, Protocol

import structlog

from safecall.execution.types import AttemptSummary, Options
from safecall.isolation.types import format_trace
from safecall.results import Result


class FailureLogger(Protocol):
    """Logging collaborator: called at most once per terminal failure."""

    def warn(self, reason: Any, context: dict[str, Any]) -> None:
        ...


class StructlogFailureLogger:
    """Default collaborator: one structlog warning per failed capture."""

    def __init__(self, logger: Any = None):
        self._logger = logger or structlog.get_logger("safecall")

    def warn(self, reason: Any, context: dict[str, Any]) -> None:
        self._logger.warning("capture.failed", reason=repr(reason), **context)


def finalize(
    summary: AttemptSummary,
    options: Options,
    failure_logger: Optional[FailureLogger] = None,
) -> Result:
    result = summary.result
    if result.is_ok:
        return result

    if not options.skip_log:
        context: dict[str, Any] = {
            "target": summary.target,
            "attempts": summary.attempts,
            "timeout": options.timeout,
        }
        if result.trace:
            context["trace"] = format_trace(result.trace)
        (failure_logger or StructlogFailureLogger()).warn(result.reason, context)

    if options.stacktrace or result.trace is None:
        return result
    return replace(result, trace=None)
