"""Execution engine behind `TestCase.do`.

One run: install operation expectations on the mock backend(s), serve the
handler over an ephemeral TLS server, send the request, check the response,
and finally verify every installed expectation. The final verification runs
on every exit path, fatal aborts included.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional

import httpx

from litmus.config import HarnessConfig, load_config
from litmus.errors import HarnessError
from litmus.http import client as http_client
from litmus.http.server import EphemeralTLSServer
from litmus.http.tls import cached_tls_material
from litmus.logic.assertions import TestingContext, assert_equal, assert_regexp
from litmus.logic.body import (
    JSON_MEDIA_TYPE,
    json_equal,
    parse_json,
    resolve_expected_body,
    resolve_request_body,
)
from litmus.logic.mock_backend import Mock

if TYPE_CHECKING:  # pragma: no cover
    from litmus.models.test_case import TestCase

logger = logging.getLogger(__name__)


def _backends(test: "TestCase", backend: Mock) -> List[Mock]:
    seen: List[Mock] = [backend]
    for op in test.operations:
        if op.backend is not None and not any(op.backend is b for b in seen):
            seen.append(op.backend)
    return seen


def register_operations(test: "TestCase", backend: Mock) -> None:
    """Install one expectation per declared operation.

    An operation already installed on its target (shared by an earlier run)
    keeps its handle, so its return stack carries on where it left off.
    """
    for op in test.operations:
        target = op.backend if op.backend is not None else backend
        if op._call is not None and op._installed_on is target:
            continue
        op._call = target.on(op.name, *op.args).returns(*op.initial_returns())
        op._installed_on = target


def check_response(t: TestingContext, test: "TestCase", response: httpx.Response) -> None:
    assert_equal(t, test.expected_status, response.status_code, "status")

    if test.expected_content_type:
        assert_equal(
            t,
            test.expected_content_type,
            response.headers.get("Content-Type", ""),
            "content-type",
        )

    for name, pattern in (test.expected_headers or {}).items():
        values = response.headers.get_list(name)
        assert_regexp(t, pattern, values[0] if values else "", f"header {name}")

    expected = resolve_expected_body(test.expected_response, test.operations)
    if expected is None:
        return

    received = response.content.decode("utf-8", errors="replace")
    if not received:
        if expected.text:
            t.error(f"body: expected {expected.text!r}, got an empty body")
        return

    if expected.is_json:
        ok, actual = parse_json(received)
        if not ok:
            t.error(f"body: expected JSON {expected.text!r}, got non-JSON {received!r}")
            return
        _, wanted = parse_json(expected.text)
        if not json_equal(wanted, actual):
            t.error(f"body: expected JSON {expected.text}, got {received}")
        return

    ok_expected, wanted = parse_json(expected.text)
    ok_actual, actual = parse_json(received)
    if ok_expected and ok_actual:
        if not json_equal(wanted, actual):
            t.error(f"body: expected JSON {expected.text}, got {received}")
        return
    assert_equal(t, expected.text, received, "body")


def run(
    test: "TestCase",
    backend: Mock,
    handler: Any,
    t: TestingContext,
    config: Optional[HarnessConfig] = None,
) -> None:
    cfg = config or load_config()
    backends = _backends(test, backend)
    checkpoints = [b.checkpoint() for b in backends]
    for b in backends:
        b.bind(test)
    try:
        try:
            register_operations(test, backend)
            body = resolve_request_body(test.request, test.operations, backend, test)
            material = cached_tls_material(cfg.tls.common_name, cfg.tls.valid_days)
            with EphemeralTLSServer(handler, material, cfg.server) as server:
                with server.client(cfg.client) as client:
                    request = http_client.build_request(
                        client,
                        test.method,
                        test.path,
                        query=test.query,
                        body=body,
                        content_type=test.request_content_type or JSON_MEDIA_TYPE,
                        setup=test.setup,
                    )
                    logger.info("request.send", extra={"method": request.method, "url": str(request.url)})
                    response = http_client.send(
                        client,
                        request,
                        redirect=test.redirect,
                        max_redirects=cfg.client.max_redirects,
                    )
            logger.info("response.received", extra={"status": response.status_code})
            check_response(t, test, response)
        except HarnessError as exc:
            t.fatal(str(exc), exc)
            raise
    finally:
        for b, since in zip(backends, checkpoints):
            b.assert_expectations(t, since)
        for b in backends:
            b.bind(None)


__all__ = ["register_operations", "check_response", "run"]
