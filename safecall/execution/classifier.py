"""Outcome classifier: raw attempt outcome -> Ok / Err."""

from typing import Any

from safecall.results import Err, Ok, Result
from safecall.isolation.types import Raised, RawOutcome, Returned, Terminated

OK_TAG = "ok"


def classify(raw: RawOutcome, ok_tuple: bool = False) -> Result:
    """Classify one raw outcome. Pure; never raises for a valid outcome.

    With ``ok_tuple`` on, a return value only counts as success when it is
    an ``("ok", value)`` pair; any other value becomes the failure reason.
    Raised errors keep their trace here, the formatter decides whether the
    caller gets to see it.
    """
    if isinstance(raw, Returned):
        if not ok_tuple:
            return Ok(raw.value)
        if _is_ok_tuple(raw.value):
            return Ok(raw.value[1])
        return Err(raw.value)

    if isinstance(raw, Raised):
        return Err(raw.error, trace=raw.trace)

    if isinstance(raw, Terminated):
        return Err(raw.termination)

    raise TypeError(f"not a raw outcome: {type(raw).__name__}")


def _is_ok_tuple(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and isinstance(value[0], str)
        and value[0] == OK_TAG
    )
