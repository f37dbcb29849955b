"""Testing context and soft assertion helpers.

`error` records a failure and lets the run continue; `fatal` aborts it by
raising. `SoftAssertions` is the default context used by `TestCase.do`;
any object with the same two methods can stand in for it.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, NoReturn, Optional, Protocol

from litmus.errors import HarnessError, LitmusAssertionError

logger = logging.getLogger(__name__)


class TestingContext(Protocol):
    __test__ = False

    def error(self, message: str) -> None: ...

    def fatal(self, message: str, cause: Optional[BaseException] = None) -> NoReturn: ...


class SoftAssertions:
    """Collects soft failures; `check()` raises them all at once."""

    def __init__(self) -> None:
        self.failures: List[str] = []

    def error(self, message: str) -> None:
        logger.error("assertion.failed %s", message)
        self.failures.append(message)

    def fatal(self, message: str, cause: Optional[BaseException] = None) -> NoReturn:
        logger.error("harness.fatal %s", message)
        if isinstance(cause, HarnessError):
            raise cause
        raise HarnessError(message) from cause

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def check(self) -> None:
        if self.failures:
            raise LitmusAssertionError(self.failures)


def assert_equal(t: TestingContext, expected: Any, actual: Any, label: str) -> bool:
    if expected == actual:
        return True
    t.error(f"{label}: expected {expected!r}, got {actual!r}")
    return False


def assert_regexp(t: TestingContext, pattern: str, actual: str, label: str) -> bool:
    try:
        matched: Optional[re.Match[str]] = re.search(pattern, actual)
    except re.error as exc:
        t.error(f"{label}: invalid pattern {pattern!r}: {exc}")
        return False
    if matched is None:
        t.error(f"{label}: expect {actual!r} to match {pattern!r}")
        return False
    return True


__all__ = [
    "TestingContext",
    "SoftAssertions",
    "assert_equal",
    "assert_regexp",
]
