"""safecall: run a callable in isolation and get back Ok(value) or Err(reason)."""

from safecall.errors import InvalidCallableError, InvalidOptionsError, SafecallError
from safecall.execution import Options, capture, guarded
from safecall.isolation import CallSpec, ForeignError, Termination, UnpicklableResult
from safecall.main import setup
from safecall.results import Err, Ok, Result, TimeoutExceeded

__all__ = [
    "InvalidCallableError",
    "InvalidOptionsError",
    "SafecallError",
    "Options",
    "capture",
    "guarded",
    "CallSpec",
    "ForeignError",
    "Termination",
    "UnpicklableResult",
    "Err",
    "Ok",
    "Result",
    "TimeoutExceeded",
    "setup",
]
