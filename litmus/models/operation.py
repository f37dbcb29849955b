"""Declared backend operations and references into them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional

from litmus.errors import InvalidReferenceError

if TYPE_CHECKING:  # pragma: no cover
    from litmus.logic.mock_backend import Call, Mock


class Args(list):
    """Operation arguments: concrete values or matchers."""


class Returns(list):
    """Operation return values."""


class ReturnStack(list):
    """Return lists consumed front-to-back across successive calls."""


@dataclass(eq=False)
class Operation:
    """A backend method call the handler under test is expected to make.

    `args` entries may be concrete values (matched by type) or matchers.
    When `return_stack` is set and `returns` is empty, the first call gets
    `return_stack[0]` and every later call gets the last element.
    `backend` installs the expectation on an alternate mock instead of the
    one passed to `TestCase.do`.
    """

    name: str
    args: List[Any] = field(default_factory=list)
    returns: List[Any] = field(default_factory=list)
    return_stack: List[List[Any]] = field(default_factory=list)
    backend: Optional["Mock"] = None

    _call: Optional["Call"] = field(default=None, init=False, repr=False)
    _installed_on: Optional["Mock"] = field(default=None, init=False, repr=False)

    def initial_returns(self) -> list:
        if not self.returns and self.return_stack:
            return list(self.return_stack[-1])
        return list(self.returns)


@dataclass(frozen=True)
class OperationRef:
    """Points at `operations[index].args[arg]` or `operations[index].returns[result]`."""

    index: int = 0
    arg: int = 0
    result: int = 0

    def _operation(self, operations: List[Operation]) -> Operation:
        if not 0 <= self.index < len(operations):
            raise InvalidReferenceError(
                f"invalid reference: operation index {self.index} out of range "
                f"({len(operations)} operation(s) declared)"
            )
        return operations[self.index]

    def resolve_arg(self, operations: List[Operation]) -> Any:
        op = self._operation(operations)
        if not 0 <= self.arg < len(op.args):
            raise InvalidReferenceError(
                f"invalid reference: arg index {self.arg} out of range for "
                f"operation {op.name!r} ({len(op.args)} arg(s))"
            )
        return op.args[self.arg]

    def resolve_return(self, operations: List[Operation]) -> Any:
        op = self._operation(operations)
        if not 0 <= self.result < len(op.returns):
            raise InvalidReferenceError(
                f"invalid reference: return index {self.result} out of range for "
                f"operation {op.name!r} ({len(op.returns)} return(s))"
            )
        return op.returns[self.result]


def operation_arg(arg: int, op: int = 0) -> OperationRef:
    """Reference argument `arg` of operation `op`."""
    return OperationRef(index=op, arg=arg)


def operation_return(result: int, op: int = 0) -> OperationRef:
    """Reference return value `result` of operation `op`."""
    return OperationRef(index=op, result=result)


__all__ = [
    "Args",
    "Returns",
    "ReturnStack",
    "Operation",
    "OperationRef",
    "operation_arg",
    "operation_return",
]
