"""Argument matchers for mock expectations.

A declared operation argument is either a concrete value or a matcher. At
registration time concrete values are widened to `AnyOfType(type(value))`,
so a handler passing a different id than the one in the fixture still hits
the expectation. Use `ExactValue` to pin an argument.

Matchers also implement `__eq__`, so they can be handed to
`unittest.mock` assertions (`recorder.get_user.assert_called_with(...)`).
"""

from __future__ import annotations

from typing import Any


class Matcher:
    """Base class for argument matchers."""

    def matches(self, value: Any) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Matcher):
            return repr(self) == repr(other)
        return self.matches(other)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = object.__hash__


class ExactValue(Matcher):
    def __init__(self, value: Any) -> None:
        self.value = value

    def matches(self, value: Any) -> bool:
        if isinstance(self.value, bool) != isinstance(value, bool):
            return False
        return bool(self.value == value)

    def __repr__(self) -> str:
        return f"ExactValue({self.value!r})"


class AnyOfType(Matcher):
    def __init__(self, type_: type) -> None:
        if not isinstance(type_, type):
            raise TypeError(f"AnyOfType expects a type, got {type_!r}")
        self.type = type_

    def matches(self, value: Any) -> bool:
        # bool is an int subclass; keep the two apart
        if self.type is int and isinstance(value, bool):
            return False
        return isinstance(value, self.type)

    def __repr__(self) -> str:
        return f"AnyOfType({self.type.__qualname__})"


class _Anything(Matcher):
    def matches(self, value: Any) -> bool:
        return True

    def __repr__(self) -> str:
        return "ANYTHING"


ANYTHING = _Anything()


def matcher_for(arg: Any) -> Matcher:
    """Return the matcher used to register `arg` as an expected argument."""
    if isinstance(arg, Matcher):
        return arg
    return AnyOfType(type(arg))


def describe_args(args: tuple | list) -> str:
    return "(" + ", ".join(repr(a) for a in args) + ")"


__all__ = [
    "Matcher",
    "ExactValue",
    "AnyOfType",
    "ANYTHING",
    "matcher_for",
    "describe_args",
]
