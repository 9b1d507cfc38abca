"""Deadline guard: races one isolated unit against a timer."""

import logging
from typing import Union

from safecall.results import Err, TimeoutExceeded
from safecall.isolation.runner import Runner
from safecall.isolation.types import CallSpec, RawOutcome

logger = logging.getLogger(__name__)


def run_with_deadline(
    spec: CallSpec,
    timeout: float,
    runner: Runner,
    crash_report: bool = False,
) -> Union[RawOutcome, Err]:
    """Run *spec* once, giving it *timeout* seconds.

    Returns the unit's raw outcome when it arrives in time. Otherwise the
    unit is killed on the spot and a ready-made ``Err(TimeoutExceeded)`` is
    returned; there is no outcome left to classify.
    The unit is always closed before this function returns.
    """
    unit = runner.start(spec, crash_report=crash_report)
    try:
        outcome = unit.wait(timeout)
        if outcome is None:
            logger.info("Unit for %s exceeded %.3fs deadline", spec.name, timeout)
            unit.kill()
            return Err(TimeoutExceeded(seconds=timeout))
        return outcome
    finally:
        unit.close()
