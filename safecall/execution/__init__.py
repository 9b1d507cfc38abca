"""Classification, retry orchestration and result formatting."""

from safecall.execution.types import AttemptState, AttemptSummary, Options
from safecall.execution.classifier import classify
from safecall.execution.formatter import FailureLogger, StructlogFailureLogger, finalize
from safecall.execution.retry import capture, guarded, run_attempts

__all__ = [
    "AttemptState",
    "AttemptSummary",
    "Options",
    "classify",
    "FailureLogger",
    "StructlogFailureLogger",
    "finalize",
    "capture",
    "guarded",
    "run_attempts",
]
