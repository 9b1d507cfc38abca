"""Retry orchestrator and the capture() entry point.

capture() runs a callable through up to ``retry_count`` attempts. Each
attempt is one deadline-guarded isolated execution followed by
classification. The first Ok ends the loop; a failing attempt is followed
by a fixed ``backoff`` sleep unless it was the last one, in which case its
Err is the final result.
"""

import functools
import logging
import time
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from safecall.core.logging import reset_capture_id, set_capture_id
from safecall.core.sentry import ensure_sentry
from safecall.execution.classifier import classify
from safecall.execution.formatter import FailureLogger, finalize
from safecall.execution.types import AttemptState, AttemptSummary, Options
from safecall.isolation.deadline import run_with_deadline
from safecall.isolation.runner import Runner, get_runner
from safecall.isolation.types import CallSpec
from safecall.results import Err, Result

logger = logging.getLogger(__name__)


AttemptFn = Callable[[CallSpec, Options], Result]


def run_attempts(
    spec: CallSpec,
    options: Options,
    attempt: AttemptFn,
    sleep: Callable[[float], None] = time.sleep,
) -> AttemptSummary:
    """Run *attempt* until it succeeds or the retry budget is spent."""
    result: Optional[Result] = None
    for attempt_number in range(1, options.retry_count + 1):
        if attempt_number > 1:
            sleep(options.backoff)

        logger.debug(
            "Capture attempt %d/%d for %s",
            attempt_number,
            options.retry_count,
            spec.name,
        )
        result = attempt(spec, options)
        if result.is_ok:
            return AttemptSummary(
                result=result,
                attempts=attempt_number,
                state=AttemptState.SUCCEEDED,
                target=spec.name,
            )

        if attempt_number < options.retry_count:
            logger.info(
                "Attempt %d/%d for %s failed (%r); retrying in %.3fs",
                attempt_number,
                options.retry_count,
                spec.name,
                result.reason,
                options.backoff,
            )

    assert result is not None  # retry_count >= 1
    return AttemptSummary(
        result=result,
        attempts=options.retry_count,
        state=AttemptState.EXHAUSTED,
        target=spec.name,
    )


def deadline_attempt(runner: Runner) -> AttemptFn:
    """Build the attempt function: deadline guard, then classifier."""

    def attempt(spec: CallSpec, options: Options) -> Result:
        outcome = run_with_deadline(
            spec,
            options.timeout,
            runner,
            crash_report=options.crash_report,
        )
        if isinstance(outcome, Err):
            return outcome
        return classify(outcome, options.ok_tuple)

    return attempt


def capture(
    call: Any,
    options: Union[Options, Mapping[str, Any], None] = None,
    *,
    failure_logger: Optional[FailureLogger] = None,
    runner: Optional[Runner] = None,
    sleep: Callable[[float], None] = time.sleep,
    **values: Any,
) -> Result:
    """Run *call* in isolation and return ``Ok(value)`` or ``Err(reason)``.

    *call* is a zero-argument callable or a ``(target, args)`` pair, where
    target is a callable or a ``"module:function"`` name. Options may be
    given as an Options instance, a mapping, keyword arguments, or a mix.

    Nothing the callable does escapes as an exception. Invalid options or an
    invalid *call* raise from :mod:`safecall.errors`.
    """
    resolved = Options.resolve(options, **values)
    spec = CallSpec.from_callable(call)
    runner = runner or get_runner(resolved.isolation)
    if resolved.crash_report:
        ensure_sentry()

    token = set_capture_id(uuid.uuid4().hex[:12])
    try:
        summary = run_attempts(spec, resolved, deadline_attempt(runner), sleep=sleep)
        return finalize(summary, resolved, failure_logger)
    finally:
        reset_capture_id(token)


def guarded(options: Union[Options, Mapping[str, Any], None] = None, **values: Any):
    """Decorator form of capture().

    The decorated function returns a Result instead of its value::

        @guarded(timeout=2.0, retry_count=3)
        def fetch(url): ...

        fetch("https://example.org")  # Ok(...) or Err(...)
    """
    resolved = Options.resolve(options, **values)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Result]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Result:
            return capture(functools.partial(fn, *args, **kwargs), resolved)

        return wrapper

    return decorator
