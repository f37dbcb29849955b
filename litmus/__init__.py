"""litmus: declarative HTTP handler tests.

A `TestCase` declares the backend operations a handler is expected to call,
the request to send and the response to expect. `TestCase.do` installs the
operations on a `Mock` backend, serves the handler over an ephemeral TLS
server, sends the request and checks the response, then verifies that every
declared operation was called. Business logic lives in `litmus/logic/`,
data types in `litmus/models/` and the server/client plumbing in
`litmus/http/`.
"""

from __future__ import annotations

from litmus.config import HarnessConfig, load_config
from litmus.errors import (
    BodyGeneratorError,
    EncodeError,
    HarnessError,
    InvalidReferenceError,
    LitmusAssertionError,
    RequestBuildError,
    RoundTripError,
    ServerStartupError,
    UnexpectedCallError,
)
from litmus.logging_setup import configure_logging
from litmus.logic.assertions import SoftAssertions, TestingContext
from litmus.logic.body import RequestHandler
from litmus.logic.matchers import ANYTHING, AnyOfType, ExactValue
from litmus.logic.mock_backend import Arguments, Call, Mock
from litmus.logic.query import Values, begin_query
from litmus.logic.redirects import NO_REDIRECT, follow_redirects
from litmus.models.operation import (
    Args,
    Operation,
    OperationRef,
    Returns,
    ReturnStack,
    operation_arg,
    operation_return,
)
from litmus.models.test_case import Test, TestCase

__all__ = [
    "ANYTHING",
    "AnyOfType",
    "Args",
    "Arguments",
    "BodyGeneratorError",
    "Call",
    "EncodeError",
    "ExactValue",
    "HarnessConfig",
    "HarnessError",
    "InvalidReferenceError",
    "LitmusAssertionError",
    "Mock",
    "NO_REDIRECT",
    "Operation",
    "OperationRef",
    "RequestBuildError",
    "RequestHandler",
    "Returns",
    "ReturnStack",
    "RoundTripError",
    "ServerStartupError",
    "SoftAssertions",
    "Test",
    "TestCase",
    "TestingContext",
    "UnexpectedCallError",
    "Values",
    "begin_query",
    "configure_logging",
    "follow_redirects",
    "load_config",
    "operation_arg",
    "operation_return",
]
