"""Option and attempt types for capture().

Options are resolved once per capture() call and shared read-only by every
attempt.
"""

import warnings
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Mapping, Optional, Union

from safecall.core.config import Settings, get_settings
from safecall.errors import InvalidOptionsError
from safecall.results import Result

ISOLATION_MODES = ("process", "thread")

# Deprecated spellings accepted for backward compatibility.
DEPRECATED_ALIASES = {
    "time": "timeout",
    "crush_report": "crash_report",
}


class AttemptState(StrEnum):
    """Retry orchestrator states."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AttemptSummary:
    """Terminal state of one capture() call, handed to the formatter."""

    result: Result
    attempts: int
    state: AttemptState
    target: str = ""


def _from_settings(name: str):
    return lambda: getattr(get_settings(), name)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Options:
    """Per-call policy. Durations are in seconds.

    Omitted timeout, backoff and isolation fall back to Settings.
    """

    timeout: float = field(default_factory=_from_settings("default_timeout"))
    retry_count: int = 1
    backoff: float = field(default_factory=_from_settings("default_backoff"))
    ok_tuple: bool = False
    stacktrace: bool = False
    skip_log: bool = False
    crash_report: bool = False
    isolation: str = field(default_factory=_from_settings("isolation"))

    def __post_init__(self) -> None:
        if not _is_number(self.timeout) or self.timeout <= 0:
            raise InvalidOptionsError(f"timeout must be a positive number, got {self.timeout!r}")
        if not isinstance(self.retry_count, int) or isinstance(self.retry_count, bool) or self.retry_count < 1:
            raise InvalidOptionsError(
                f"retry_count must be an integer >= 1, got {self.retry_count!r}"
            )
        if not _is_number(self.backoff) or self.backoff < 0:
            raise InvalidOptionsError(f"backoff must be a number >= 0, got {self.backoff!r}")
        if self.isolation not in ISOLATION_MODES:
            raise InvalidOptionsError(
                f"isolation must be one of {ISOLATION_MODES}, got {self.isolation!r}"
            )

    @classmethod
    def from_values(
        cls,
        values: Optional[Mapping[str, Any]] = None,
        settings: Optional[Settings] = None,
    ) -> "Options":
        raw = _normalise_aliases(values or {})
        unknown = sorted(set(raw) - _FIELD_NAMES)
        if unknown:
            raise InvalidOptionsError(f"unknown option(s): {', '.join(unknown)}")

        if any(key not in raw for key in ("timeout", "backoff", "isolation")):
            settings = settings or get_settings()
            raw.setdefault("timeout", settings.default_timeout)
            raw.setdefault("backoff", settings.default_backoff)
            raw.setdefault("isolation", settings.isolation)
        return cls(**raw)

    @classmethod
    def resolve(
        cls,
        options: Union["Options", Mapping[str, Any], None] = None,
        settings: Optional[Settings] = None,
        **values: Any,
    ) -> "Options":
        """Merge an Options instance or mapping with keyword overrides."""
        if isinstance(options, Options):
            if not values:
                return options
            base: dict[str, Any] = asdict(options)
        elif options is None:
            base = {}
        elif isinstance(options, Mapping):
            base = _normalise_aliases(options)
        else:
            raise InvalidOptionsError(
                f"options must be an Options instance or a mapping, got {type(options).__name__}"
            )
        return cls.from_values({**base, **_normalise_aliases(values)}, settings=settings)


_FIELD_NAMES = {
    "timeout",
    "retry_count",
    "backoff",
    "ok_tuple",
    "stacktrace",
    "skip_log",
    "crash_report",
    "isolation",
}


def _normalise_aliases(values: Mapping[str, Any]) -> dict[str, Any]:
    raw = dict(values)
    for alias, canonical in DEPRECATED_ALIASES.items():
        if alias not in raw:
            continue
        if canonical in raw:
            raise InvalidOptionsError(f"give either {alias!r} or {canonical!r}, not both")
        warnings.warn(
            f"option {alias!r} is deprecated; use {canonical!r}",
            DeprecationWarning,
            stacklevel=4,
        )
        raw[canonical] = raw.pop(alias)
    return raw
