"""Isolated runners.

Each attempt runs the callable in a fresh unit of concurrency and delivers
exactly one RawOutcome to the supervising caller.

ProcessRunner (default):
  One child process per attempt. The outcome travels back over a one-way
  pipe; the process sentinel is the independent termination channel. If the
  child dies without writing an outcome (signal, rlimit, os._exit), the
  supervisor reports it as Terminated with the exit code the OS surfaced.
  Units can be killed at any point with SIGKILL.

ThreadRunner:
  One daemon thread per attempt, for callables that cannot run in a child
  process. Python threads cannot be killed: kill() sets a cancellation token
  and abandons the thread, whose late outcome is discarded. A callable that
  never returns keeps its thread alive until the interpreter exits.
"""

import logging
import multiprocessing
import pickle
import queue
import threading
import time
from multiprocessing import connection as mp_connection
from typing import Optional, Protocol

from safecall.core.config import Settings, get_settings
from safecall.core.sentry import report_crash
from safecall.errors import InvalidOptionsError
from safecall.isolation.limits import ResourceLimits, apply_resource_limits
from safecall.isolation.types import (
    CallSpec,
    ForeignError,
    Raised,
    RawOutcome,
    Returned,
    Terminated,
    Termination,
    UnpicklableResult,
    extract_trace,
)

logger = logging.getLogger(__name__)

# Upper bound on the time a crash-reporting unit that already delivered its
# outcome gets to finish exiting. Never extends past the attempt deadline.
_EXIT_GRACE_SECONDS = 3.0


class IsolatedUnit(Protocol):
    """One running attempt, owned by the deadline guard."""

    def wait(self, timeout: float) -> Optional[RawOutcome]:
        """Block up to *timeout* seconds; None means the unit is still running."""

    def kill(self) -> None:
        """Stop the unit without a grace period."""

    def close(self) -> None:
        """Release the unit. It must not be used afterwards."""


class Runner(Protocol):
    def start(self, spec: CallSpec, crash_report: bool = False) -> IsolatedUnit:
        """Launch *spec* in a new unit."""


# ---------------------------------------------------------------------------
# Fault boundary (runs inside the unit)
# ---------------------------------------------------------------------------


def _run_guarded(spec: CallSpec) -> tuple[RawOutcome, Optional[BaseException]]:
    try:
        value = spec.invoke()
    except BaseException as exc:
        tb = exc.__traceback__
        trace = extract_trace(tb.tb_next if tb is not None and tb.tb_next else tb)
        return Raised(error=exc, trace=trace), exc
    return Returned(value), None


def _encode(outcome: RawOutcome) -> bytes:
    """Pickle *outcome*, degrading values that cannot make the round trip."""
    try:
        payload = pickle.dumps(outcome)
        pickle.loads(payload)
        return payload
    except Exception as exc:
        return pickle.dumps(_portable(outcome, exc))


def _decode(payload: bytes) -> RawOutcome:
    try:
        return pickle.loads(payload)
    except Exception as exc:
        # Only reachable when the child and the caller import different code
        # (spawn or forkserver start methods).
        return Raised(error=ForeignError(type(exc).__qualname__, f"cannot decode outcome: {exc}"))


def _portable(outcome: RawOutcome, exc: Exception) -> RawOutcome:
    if isinstance(outcome, Returned):
        return Raised(error=UnpicklableResult(type(outcome.value).__qualname__, str(exc)))
    if isinstance(outcome, Raised):
        error = outcome.error
        return Raised(
            error=ForeignError(type(error).__qualname__, str(error)),
            trace=outcome.trace,
        )
    return outcome


# ---------------------------------------------------------------------------
# Process units
# ---------------------------------------------------------------------------


def _child_main(
    spec: CallSpec,
    conn: mp_connection.Connection,
    limits: ResourceLimits,
    crash_report: bool,
) -> None:
    apply_resource_limits(limits)
    outcome, exc = _run_guarded(spec)
    try:
        conn.send_bytes(_encode(outcome))
    finally:
        conn.close()

    if exc is not None and crash_report:
        report_crash(exc)
        # Let multiprocessing's own unhandled-exception path report it too.
        raise exc


class ProcessUnit:
    def __init__(
        self,
        process: multiprocessing.process.BaseProcess,
        conn: mp_connection.Connection,
        crash_report: bool = False,
    ):
        self._process = process
        self._conn = conn
        self._crash_report = crash_report
        self._delivered = False
        self._deadline: Optional[float] = None
        self._exitcode: Optional[int] = None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid

    @property
    def exitcode(self) -> Optional[int]:
        """Exit code once the unit has been reaped, else None."""
        return self._exitcode

    def is_alive(self) -> bool:
        return self._process.is_alive()

    def wait(self, timeout: float) -> Optional[RawOutcome]:
        if self._deadline is None:
            self._deadline = time.monotonic() + timeout
        ready = mp_connection.wait([self._conn, self._process.sentinel], timeout=timeout)
        if not ready:
            return None

        if self._conn in ready or self._conn.poll():
            try:
                payload = self._conn.recv_bytes()
            except (EOFError, OSError):
                # Pipe closed without a complete outcome: the unit died.
                pass
            else:
                self._delivered = True
                return _decode(payload)

        self._reap()
        termination = Termination.from_exitcode(self._exitcode)
        logger.info(
            "Unit pid=%s terminated abnormally (exit=%s, signal=%s)",
            self._process.pid,
            termination.exitcode,
            termination.signal,
        )
        return Terminated(termination)

    def kill(self) -> None:
        if self._process.is_alive():
            logger.info("Killing unit pid=%s", self._process.pid)
            self._process.kill()
        self._reap()

    def close(self) -> None:
        if self._delivered and self._crash_report:
            # The child flushes its crash report after answering.
            self._process.join(timeout=self._exit_grace())
        self.kill()
        self._conn.close()
        self._process.close()

    def _exit_grace(self) -> float:
        if self._deadline is None:
            return _EXIT_GRACE_SECONDS
        return max(0.0, min(_EXIT_GRACE_SECONDS, self._deadline - time.monotonic()))

    def _reap(self) -> None:
        self._process.join()
        self._exitcode = self._process.exitcode


class ProcessRunner:
    """Runs each attempt in its own child process."""

    def __init__(self, start_method: str = "fork", limits: Optional[ResourceLimits] = None):
        self._context = multiprocessing.get_context(start_method)
        self._limits = limits or ResourceLimits()

    def start(self, spec: CallSpec, crash_report: bool = False) -> ProcessUnit:
        reader, writer = self._context.Pipe(duplex=False)
        process = self._context.Process(
            target=_child_main,
            args=(spec, writer, self._limits, crash_report),
            name=f"safecall:{spec.name}",
        )
        process.start()
        # Only the child may hold the write end, so its death reads as EOF.
        writer.close()
        logger.debug("Started unit pid=%s for %s", process.pid, spec.name)
        return ProcessUnit(process, reader, crash_report=crash_report)


# ---------------------------------------------------------------------------
# Thread units
# ---------------------------------------------------------------------------


def _thread_main(
    spec: CallSpec,
    outcomes: "queue.Queue[RawOutcome]",
    cancelled: threading.Event,
    crash_report: bool,
) -> None:
    outcome, exc = _run_guarded(spec)
    if not cancelled.is_set():
        outcomes.put(outcome)

    if exc is not None and crash_report:
        report_crash(exc)
        # Surfaces through threading.excepthook.
        raise exc


class ThreadUnit:
    def __init__(
        self,
        thread: threading.Thread,
        outcomes: "queue.Queue[RawOutcome]",
        cancelled: threading.Event,
    ):
        self._thread = thread
        self._outcomes = outcomes
        self._cancelled = cancelled

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def wait(self, timeout: float) -> Optional[RawOutcome]:
        try:
            return self._outcomes.get(timeout=timeout)
        except queue.Empty:
            return None

    def kill(self) -> None:
        self._cancelled.set()
        if self._thread.is_alive():
            logger.warning(
                "Thread unit %s cannot be preempted; abandoning it",
                self._thread.name,
            )

    def close(self) -> None:
        if self._thread.is_alive():
            self._cancelled.set()


class ThreadRunner:
    """Runs each attempt in its own daemon thread."""

    def start(self, spec: CallSpec, crash_report: bool = False) -> ThreadUnit:
        outcomes: "queue.Queue[RawOutcome]" = queue.Queue(maxsize=1)
        cancelled = threading.Event()
        thread = threading.Thread(
            target=_thread_main,
            args=(spec, outcomes, cancelled, crash_report),
            name=f"safecall:{spec.name}",
            daemon=True,
        )
        thread.start()
        logger.debug("Started thread unit %s", thread.name)
        return ThreadUnit(thread, outcomes, cancelled)


def get_runner(mode: str, settings: Optional[Settings] = None) -> Runner:
    """Return the runner for an ``isolation`` option value."""
    if mode == "process":
        settings = settings or get_settings()
        return ProcessRunner(
            start_method=settings.start_method,
            limits=ResourceLimits.from_settings(settings),
        )
    if mode == "thread":
        return ThreadRunner()
    raise InvalidOptionsError(f"unknown isolation mode {mode!r}")
