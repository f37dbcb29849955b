"""Call-recording mock backend with expectations.

Hand-written backend wrappers subclass `Mock` and forward each method with
its name spelled out:

    class UserStore(Mock):
        def get_user(self, user_id):
            return self.method_called("get_user", user_id).get(0)

Expectations are installed with `on(name, *matchers).returns(...)`. The
handler under test calls the wrapper from the test server's thread, so all
state is guarded by a re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from unittest import mock as _mock

from litmus.errors import UnexpectedCallError
from litmus.logic.matchers import Matcher, describe_args, matcher_for

if TYPE_CHECKING:  # pragma: no cover
    from litmus.logic.assertions import TestingContext
    from litmus.models.test_case import TestCase

logger = logging.getLogger(__name__)


class Arguments(list):
    """Return values of a mocked call, with typed accessors."""

    def get(self, index: int) -> Any:
        if not 0 <= index < len(self):
            raise IndexError(
                f"mock: cannot get return value {index}, only {len(self)} declared"
            )
        return self[index]

    def error(self, index: int) -> Optional[BaseException]:
        value = self.get(index)
        if value is None:
            return None
        if not isinstance(value, BaseException):
            raise TypeError(f"mock: return value {index} is {value!r}, not an exception")
        return value

    def string(self, index: int) -> str:
        value = self.get(index)
        if not isinstance(value, str):
            raise TypeError(f"mock: return value {index} is {value!r}, not a str")
        return value

    def int(self, index: int) -> int:
        value = self.get(index)
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"mock: return value {index} is {value!r}, not an int")
        return value

    def bool(self, index: int) -> bool:
        value = self.get(index)
        if not isinstance(value, bool):
            raise TypeError(f"mock: return value {index} is {value!r}, not a bool")
        return value


class Call:
    """One installed expectation."""

    def __init__(self, parent: "Mock", method: str, matchers: List[Matcher]) -> None:
        self.parent = parent
        self.method = method
        self.matchers = matchers
        self.return_arguments = Arguments()
        self.repeatability: Optional[int] = None
        self.total_calls = 0

    def returns(self, *values: Any) -> "Call":
        with self.parent._lock:
            self.return_arguments = Arguments(values)
        return self

    def times(self, n: int) -> "Call":
        if n < 1:
            raise ValueError("times() expects a positive count")
        self.repeatability = n
        return self

    def once(self) -> "Call":
        return self.times(1)

    def accepts(self, args: tuple) -> bool:
        if len(args) != len(self.matchers):
            return False
        return all(m.matches(a) for m, a in zip(self.matchers, args))

    def exhausted(self) -> bool:
        return self.repeatability is not None and self.total_calls >= self.repeatability

    def satisfied(self, made: Optional[int] = None) -> bool:
        made = self.total_calls if made is None else made
        if self.repeatability is None:
            return made > 0
        return made == self.repeatability

    def __repr__(self) -> str:
        return f"{self.method}{describe_args(self.matchers)}"


@dataclass(frozen=True)
class Checkpoint:
    """Call counts and unexpected-call position at the start of a run."""

    counts: Dict[Call, int]
    unexpected: int


class Mock:
    """Expectation-driven mock backend.

    `recorder` is a plain `unittest.mock.Mock` mirroring every invocation,
    so `backend.recorder.get_user.assert_called_once_with(1)` works too.
    Methods whose names collide with the recorder's own non-mock attributes
    (`called`, `call_count`, `side_effect`...) are not mirrored.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self._lock = threading.RLock()
        self._name = name or type(self).__name__
        self.expected_calls: List[Call] = []
        self.calls: List[tuple] = []
        self.unexpected_calls: List[tuple] = []
        self.recorder = _mock.Mock(name=self._name, unsafe=True)
        self._test: Optional["TestCase"] = None

    def on(self, method: str, *args: Any) -> Call:
        """Install an expectation; concrete args are widened to type matchers."""
        call = Call(self, method, [matcher_for(a) for a in args])
        with self._lock:
            self.expected_calls.append(call)
        logger.debug("mock.on %s.%r", self._name, call)
        return call

    def bind(self, test: Optional["TestCase"]) -> None:
        with self._lock:
            self._test = test

    def checkpoint(self) -> Checkpoint:
        with self._lock:
            return Checkpoint(
                counts={call: call.total_calls for call in self.expected_calls},
                unexpected=len(self.unexpected_calls),
            )

    def _mirror(self, method: str, args: tuple) -> None:
        target = getattr(self.recorder, method, None)
        if isinstance(target, _mock.Mock):
            target(*args)
        else:
            logger.debug("mock.recorder_skip %s.%s", self._name, method)

    def _apply_return_stack(self, method: str, args: tuple) -> None:
        test = self._test
        if test is None:
            return
        for op in test.operations:
            call = op._call
            if op.name != method or call is None or op._installed_on is not self:
                continue
            if not call.accepts(args):
                continue
            if op.return_stack:
                call.return_arguments = Arguments(op.return_stack[0])
                op.return_stack = op.return_stack[-1:]
            return

    def method_called(self, method: str, *args: Any) -> Arguments:
        """Record an invocation of `method` and return its declared values.

        Raises `UnexpectedCallError` when no expectation accepts the call.
        """
        with self._lock:
            self._apply_return_stack(method, args)
            self.calls.append((method, args))
            self._mirror(method, args)
            for call in self.expected_calls:
                if call.method == method and not call.exhausted() and call.accepts(args):
                    call.total_calls += 1
                    return Arguments(call.return_arguments)
            self.unexpected_calls.append((method, args))
            known = [c for c in self.expected_calls if c.method == method]
        message = (
            f"mock: unexpected call {self._name}.{method}{describe_args(args)}; "
            f"expectations for {method!r}: {known or 'none'}"
        )
        logger.error(message)
        raise UnexpectedCallError(message)

    def assert_expectations(self, t: "TestingContext", since: Optional[Checkpoint] = None) -> bool:
        """Report every unmet expectation and unexpected call on `t`.

        With `since`, only calls made after that checkpoint count, so an
        expectation shared by several runs must be met again by each run.
        """
        ok = True
        baseline: Dict[Call, int] = since.counts if since is not None else {}
        with self._lock:
            made = [(call, call.total_calls - baseline.get(call, 0)) for call in self.expected_calls]
            unexpected = list(self.unexpected_calls[since.unexpected if since is not None else 0:])
        for call, count in made:
            if call.satisfied(count):
                continue
            ok = False
            if call.repeatability is None:
                t.error(f"mock: expected call {self._name}.{call!r} was never made")
            else:
                t.error(
                    f"mock: expected call {self._name}.{call!r} {call.repeatability} "
                    f"time(s), got {count}"
                )
        for method, args in unexpected:
            ok = False
            t.error(f"mock: unexpected call {self._name}.{method}{describe_args(args)}")
        return ok

    def assert_number_of_calls(self, t: "TestingContext", method: str, expected: int) -> bool:
        with self._lock:
            actual = sum(1 for name, _ in self.calls if name == method)
        if actual != expected:
            t.error(f"mock: expected {method!r} to be called {expected} time(s), got {actual}")
            return False
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name!r} expectations={len(self.expected_calls)}>"


__all__ = ["Arguments", "Call", "Checkpoint", "Mock"]
