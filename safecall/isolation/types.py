"""Types shared by the isolated runners and the deadline guard.

CallSpec describes what to run. Returned, Raised and Terminated are the
three raw outcomes a single attempt can produce; exactly one of them is
delivered per attempt.
"""

import importlib
import signal
import traceback
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Callable, Optional, Union

from safecall.errors import InvalidCallableError


@dataclass(frozen=True)
class CallSpec:
    """A zero-argument callable, or a target plus positional arguments.

    ``target`` is either a callable or a named target string such as
    ``"package.module:function"``. Named targets are resolved by
    ``invoke()``, which runs inside the isolated unit.
    """

    target: Union[Callable[..., Any], str]
    args: tuple = ()

    @classmethod
    def from_callable(cls, obj: Any) -> "CallSpec":
        if isinstance(obj, CallSpec):
            return obj
        if callable(obj):
            return cls(target=obj)
        if isinstance(obj, (tuple, list)) and len(obj) == 2:
            target, args = obj
            if not (callable(target) or isinstance(target, str)):
                raise InvalidCallableError(
                    f"target must be a callable or a dotted name, got {type(target).__name__}"
                )
            if isinstance(target, str) and not target.strip():
                raise InvalidCallableError("named target must not be empty")
            if not isinstance(args, (tuple, list)):
                raise InvalidCallableError(
                    f"arguments must be a list or tuple, got {type(args).__name__}"
                )
            return cls(target=target.strip() if isinstance(target, str) else target, args=tuple(args))
        raise InvalidCallableError(
            f"expected a callable or a (target, args) pair, got {type(obj).__name__}"
        )

    @property
    def name(self) -> str:
        if isinstance(self.target, str):
            return self.target
        module = getattr(self.target, "__module__", None) or ""
        qualname = getattr(self.target, "__qualname__", None) or repr(self.target)
        return f"{module}.{qualname}" if module else qualname

    def invoke(self) -> Any:
        fn = resolve_target(self.target) if isinstance(self.target, str) else self.target
        return fn(*self.args)


def resolve_target(name: str) -> Callable[..., Any]:
    """Import and return the callable referenced by *name*.

    Accepts ``module:attr.path`` or ``module.attr``. Raises ImportError or
    AttributeError when the name does not resolve, TypeError when it
    resolves to something that is not callable.
    """
    if ":" in name:
        module_name, _, attr_path = name.partition(":")
    else:
        module_name, _, attr_path = name.rpartition(".")
    if not module_name or not attr_path:
        raise ImportError(f"cannot resolve named target {name!r}")

    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    if not callable(obj):
        raise TypeError(f"named target {name!r} is not callable")
    return obj


@dataclass(frozen=True)
class TraceFrame:
    filename: str
    lineno: Optional[int]
    name: str
    line: Optional[str] = None

    def format(self) -> str:
        text = f'File "{self.filename}", line {self.lineno}, in {self.name}'
        if self.line:
            text += f"\n    {self.line}"
        return text


def extract_trace(tb: Optional[TracebackType]) -> tuple[TraceFrame, ...]:
    """Turn a traceback into plain, picklable frames (outermost first)."""
    return tuple(
        TraceFrame(
            filename=frame.filename,
            lineno=frame.lineno,
            name=frame.name,
            line=frame.line or None,
        )
        for frame in traceback.extract_tb(tb)
    )


def format_trace(trace: tuple[TraceFrame, ...]) -> str:
    return "\n".join(frame.format() for frame in trace)


@dataclass(frozen=True)
class Termination:
    """How an isolated unit ended when it neither returned nor raised.

    ``exitcode`` is what the OS reported; negative values mean the unit was
    killed by that signal number, and ``signal`` carries its name.
    """

    exitcode: Optional[int]
    signal: Optional[str] = None

    @classmethod
    def from_exitcode(cls, exitcode: Optional[int]) -> "Termination":
        if exitcode is not None and exitcode < 0:
            try:
                name = signal.Signals(-exitcode).name
            except ValueError:
                name = f"SIG{-exitcode}"
            return cls(exitcode=exitcode, signal=name)
        return cls(exitcode=exitcode)


class ForeignError(Exception):
    """Stands in for an exception that could not cross the process boundary."""

    def __init__(self, type_name: str, message: str):
        self.type_name = type_name
        self.message = message
        super().__init__(type_name, message)

    def __str__(self) -> str:
        return f"{self.type_name}: {self.message}"


class UnpicklableResult(Exception):
    """The callable returned a value that could not be sent back to the caller."""

    def __init__(self, type_name: str, detail: str):
        self.type_name = type_name
        self.detail = detail
        super().__init__(type_name, detail)

    def __str__(self) -> str:
        return f"cannot transfer {self.type_name} result: {self.detail}"


@dataclass(frozen=True)
class Returned:
    value: Any


@dataclass(frozen=True)
class Raised:
    error: BaseException
    trace: tuple[TraceFrame, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Terminated:
    termination: Termination


RawOutcome = Union[Returned, Raised, Terminated]
