"""Structured logging via structlog.

Configures structlog once at application startup. All subsequent calls to
`structlog.get_logger()` (or `logging.getLogger()` via the stdlib bridge)
will use this configuration.

Renderer selection:
  debug=True:  `ConsoleRenderer` with colours for local development.
  debug=False: `JSONRenderer` for machine-parseable logs in production.

ContextVar injection:
  `capture()` stores a short capture ID in a ContextVar for the duration of
  the call. Every line emitted inside that call carries it, whether it comes
  from structlog or from a stdlib logger routed through the bridge, so the
  attempt logs and the final failure warning can be correlated.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token

import structlog

# Name of the root handler installed by configure_structlog
_HANDLER_NAME = "safecall"

_capture_id_var: ContextVar[str] = ContextVar("capture_id", default="")


def get_capture_id() -> str:
    """Return the current capture ID, or empty string outside a capture."""
    return _capture_id_var.get()


def set_capture_id(capture_id: str) -> Token:
    return _capture_id_var.set(capture_id)


def reset_capture_id(token: Token) -> None:
    _capture_id_var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject capture_id from its ContextVar."""
    capture_id = get_capture_id()
    if capture_id:
        event_dict["capture_id"] = capture_id
    return event_dict


def configure_structlog(debug: bool = True) -> None:
    """Configure structlog for the application lifetime.

    Calling multiple times is safe: structlog is idempotent and the stdlib
    bridge handler is replaced, not duplicated.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context_vars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging through the same processors, so the lifecycle
    # messages from the runner and the retry loop carry capture_id as well.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared_processors],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
