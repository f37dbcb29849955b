"""Harness-fatal error hierarchy.

These errors abort the running test case immediately: they signal a broken
fixture (bad reference, unencodable value, server that never came up) rather
than a handler that misbehaved. Handler mismatches are soft failures and are
collected by `litmus.logic.assertions.SoftAssertions` instead.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for fatal harness errors."""


class InvalidReferenceError(HarnessError):
    """An OperationRef points outside the declared operations, args or returns."""


class EncodeError(HarnessError):
    """A request or expected-response value could not be JSON encoded."""


class RequestBuildError(HarnessError):
    """The HTTP request could not be constructed."""


class BodyGeneratorError(HarnessError):
    """A dynamic request body generator failed."""


class RoundTripError(HarnessError):
    """The HTTP exchange with the test server failed."""


class ServerStartupError(HarnessError):
    """The ephemeral TLS server did not start."""


class LitmusAssertionError(AssertionError):
    """One or more soft assertions failed during a test case run."""

    def __init__(self, failures: list[str]) -> None:
        self.failures = list(failures)
        lines = "\n".join(f"  - {f}" for f in self.failures)
        super().__init__(f"{len(self.failures)} assertion(s) failed:\n{lines}")


class UnexpectedCallError(AssertionError):
    """A mocked method was invoked with no matching expectation."""


__all__ = [
    "HarnessError",
    "InvalidReferenceError",
    "EncodeError",
    "RequestBuildError",
    "BodyGeneratorError",
    "RoundTripError",
    "ServerStartupError",
    "LitmusAssertionError",
    "UnexpectedCallError",
]
