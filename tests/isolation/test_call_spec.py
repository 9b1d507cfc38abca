"""Tests for CallSpec construction, named targets, traces and terminations."""

import math
import signal

import pytest

from safecall.errors import InvalidCallableError
from safecall.isolation.types import (
    CallSpec,
    Termination,
    TraceFrame,
    extract_trace,
    format_trace,
    resolve_target,
)


def _add(a, b):
    return a + b


class TestFromCallable:
    def test_zero_argument_callable(self) -> None:
        spec = CallSpec.from_callable(lambda: 5)
        assert spec.args == ()
        assert spec.invoke() == 5

    def test_target_and_argument_pair(self) -> None:
        spec = CallSpec.from_callable((_add, [2, 3]))
        assert spec.args == (2, 3)
        assert spec.invoke() == 5

    def test_named_target_pair(self) -> None:
        spec = CallSpec.from_callable(("math:sqrt", (16,)))
        assert spec.target == "math:sqrt"
        assert spec.invoke() == 4.0

    def test_existing_spec_is_returned_as_is(self) -> None:
        spec = CallSpec(_add, (1, 1))
        assert CallSpec.from_callable(spec) is spec

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(InvalidCallableError):
            CallSpec.from_callable(42)

    def test_rejects_pair_with_bad_target(self) -> None:
        with pytest.raises(InvalidCallableError):
            CallSpec.from_callable((42, []))

    def test_rejects_pair_with_bad_arguments(self) -> None:
        with pytest.raises(InvalidCallableError, match="list or tuple"):
            CallSpec.from_callable((_add, "ab"))

    def test_rejects_empty_named_target(self) -> None:
        with pytest.raises(InvalidCallableError):
            CallSpec.from_callable(("  ", []))

    def test_rejects_wrong_sized_tuple(self) -> None:
        with pytest.raises(InvalidCallableError):
            CallSpec.from_callable((_add, [1], {}))

    def test_name_of_function_target(self) -> None:
        assert CallSpec(_add).name.endswith("._add")

    def test_name_of_named_target(self) -> None:
        assert CallSpec("math:sqrt", (4,)).name == "math:sqrt"


class TestResolveTarget:
    def test_colon_form(self) -> None:
        assert resolve_target("math:sqrt") is math.sqrt

    def test_dotted_form(self) -> None:
        assert resolve_target("math.floor") is math.floor

    def test_nested_attribute(self) -> None:
        assert resolve_target("os:path.join").__name__ == "join"

    def test_missing_module_raises_import_error(self) -> None:
        with pytest.raises(ImportError):
            resolve_target("safecall_no_such_module:run")

    def test_missing_attribute_raises_attribute_error(self) -> None:
        with pytest.raises(AttributeError):
            resolve_target("math:no_such_function")

    def test_bare_name_is_rejected(self) -> None:
        with pytest.raises(ImportError):
            resolve_target("sqrt")

    def test_non_callable_is_rejected(self) -> None:
        with pytest.raises(TypeError):
            resolve_target("math:pi")


class TestTrace:
    def test_extract_trace_includes_raising_frame(self) -> None:
        def explode():
            raise RuntimeError("boom")

        try:
            explode()
        except RuntimeError as exc:
            trace = extract_trace(exc.__traceback__)

        assert trace[-1].name == "explode"
        assert all(isinstance(frame, TraceFrame) for frame in trace)

    def test_format_trace(self) -> None:
        trace = (TraceFrame("a.py", 3, "f", "x = 1"), TraceFrame("b.py", 9, "g"))
        assert format_trace(trace) == (
            'File "a.py", line 3, in f\n    x = 1\nFile "b.py", line 9, in g'
        )


class TestTermination:
    def test_signal_exit_code_carries_signal_name(self) -> None:
        termination = Termination.from_exitcode(-signal.SIGKILL)
        assert termination == Termination(exitcode=-9, signal="SIGKILL")

    def test_plain_exit_code_has_no_signal(self) -> None:
        assert Termination.from_exitcode(3) == Termination(exitcode=3)

    def test_unknown_signal_number(self) -> None:
        assert Termination.from_exitcode(-200).signal == "SIG200"
