"""End-to-end tests for `TestCase.do` over the ephemeral TLS server.

Each test declares the backend operations, the request and the expected
response, and runs the sample user service through the harness. Failure
paths pass an explicit `SoftAssertions` so the recorded failures can be
inspected instead of raised.
"""

from __future__ import annotations

import httpx
import pytest

from litmus import (
    AnyOfType,
    BodyGeneratorError,
    EncodeError,
    ExactValue,
    InvalidReferenceError,
    LitmusAssertionError,
    Operation,
    RequestBuildError,
    RequestHandler,
    SoftAssertions,
    TestCase,
    begin_query,
    follow_redirects,
    operation_arg,
    operation_return,
)
from sample_service import create_app


# ----------------------------------------------------------------------------
# Happy paths
# ----------------------------------------------------------------------------

def test_get_user_by_id(users, app, harness_config):
    TestCase(
        operations=[Operation(name="get_user", args=[AnyOfType(int)], returns=[{"id": 1, "name": "a"}])],
        method="GET",
        path="/users/1",
        expected_status=200,
        expected_content_type="application/json",
        expected_response={"id": 1, "name": "a"},
    ).do(users, app, config=harness_config)
    users.recorder.get_user.assert_called_once_with(1)


def test_return_stack_across_two_posts(users, harness_config):
    app = create_app(users)
    operations = [
        Operation(
            name="create_user",
            args=[{"name": "b"}],
            return_stack=[[None, "conflict"], [{"id": 2}, None]],
        )
    ]
    TestCase(
        operations=operations,
        method="POST",
        path="/users",
        request={"name": "b"},
        expected_status=409,
        expected_response='"conflict"',
    ).do(users, app, config=harness_config)
    TestCase(
        operations=operations,
        method="POST",
        path="/users",
        request={"name": "b"},
        expected_status=201,
        expected_headers={"Location": r"^/users/\d+$"},
        expected_response={"id": 2},
    ).do(users, app, config=harness_config)
    assert len(users.expected_calls) == 1
    assert users.expected_calls[0].total_calls == 2


def test_redirects_are_observable_by_default(users, app, harness_config):
    TestCase(
        method="GET",
        path="/users/latest",
        expected_status=302,
        expected_headers={"Location": r"^/users/\d+$"},
    ).do(users, app, config=harness_config)


def test_redirect_override_follows(users, app, harness_config):
    TestCase(
        operations=[Operation(name="get_user", args=[1], returns=[{"id": 1, "name": "a"}])],
        method="GET",
        path="/users/latest",
        redirect=follow_redirects,
        expected_status=200,
        expected_response=operation_return(0),
    ).do(users, app, config=harness_config)


def test_operation_refs_reuse_declared_values(users, audit, app, harness_config):
    payload = {"name": "c", "email": "c@example.com"}
    TestCase(
        operations=[
            Operation(name="create_user", args=[payload], returns=[{"id": 3, "name": "c"}, None]),
            Operation(name="record", args=[ExactValue("user.created"), 3], returns=[None], backend=audit),
        ],
        method="POST",
        path="/users",
        request=operation_arg(0),
        expected_status=201,
        expected_response=operation_return(0),
    ).do(users, app, config=harness_config)
    users.recorder.create_user.assert_called_once_with(payload)
    audit.recorder.record.assert_called_once_with("user.created", 3)


def test_query_parameters_reach_the_handler(users, app, harness_config):
    TestCase(
        operations=[Operation(name="list_users", args=[ExactValue(2), ExactValue(["x", "y"])], returns=[[{"id": 1}]])],
        method="GET",
        path="/users",
        query=begin_query().add("page", "2").add("tag", "x").add("tag", "y").end_query(),
        expected_response=[{"id": 1}],
    ).do(users, app, config=harness_config)


def test_raw_body_setup_hook_and_content_type(users, app, harness_config):
    def add_token(request: httpx.Request) -> None:
        request.headers["X-Token"] = "t0k3n"

    TestCase(
        method="POST",
        path="/echo",
        request="plain words",
        request_content_type="text/plain",
        setup=add_token,
        expected_content_type="text/plain; charset=utf-8",
        expected_headers={"X-Echo-Token": "^t0k3n$"},
        expected_response=b"plain words",
    ).do(users, app, config=harness_config)


def test_dynamic_request_body(users, app, harness_config):
    def body(backend, test):
        assert backend is users
        return '{"generated": true}'

    TestCase(
        method="POST",
        path="/echo",
        request=RequestHandler(body),
        expected_response={"generated": True},
    ).do(users, app, config=harness_config)


def test_raw_json_expectations_compare_structurally(users, app, harness_config):
    TestCase(
        method="POST",
        path="/echo",
        request='{"b": 2, "a": 1}',
        expected_response='{ "a": 1, "b": 2 }',
    ).do(users, app, config=harness_config)


def test_no_expected_body_skips_the_body_check(users, app, harness_config):
    TestCase(
        method="POST",
        path="/echo",
        request=b"anything at all",
        expected_response=None,
    ).do(users, app, config=harness_config)


# ----------------------------------------------------------------------------
# Soft failures
# ----------------------------------------------------------------------------

def test_soft_failures_are_all_reported(users, app, harness_config):
    t = SoftAssertions()
    TestCase(
        operations=[Operation(name="get_user", args=[1], returns=[{"id": 1}])],
        method="GET",
        path="/users/1",
        expected_status=201,
        expected_content_type="text/html",
        expected_headers={"ETag": ".+"},
        expected_response={"id": 2},
    ).do(users, app, t, config=harness_config)
    labels = [f.split(":", 1)[0] for f in t.failures]
    assert labels == ["status", "content-type", "header ETag", "body"]


def test_missing_or_mismatched_location_fails(users, app, harness_config):
    t = SoftAssertions()
    TestCase(
        method="GET",
        path="/ping",
        expected_headers={"Location": r"^/users/\d+$"},
    ).do(users, app, t, config=harness_config)
    assert t.failures == ["header Location: expect '' to match '^/users/\\\\d+$'"]

    t = SoftAssertions()
    TestCase(
        method="GET",
        path="/users/latest",
        expected_status=302,
        expected_headers={"Location": r"^/accounts/\d+$"},
    ).do(users, app, t, config=harness_config)
    assert len(t.failures) == 1 and t.failures[0].startswith("header Location")


def test_empty_body_with_expected_body_fails(users, app, harness_config):
    t = SoftAssertions()
    TestCase(method="GET", path="/empty", expected_status=204, expected_response="something").do(
        users, app, t, config=harness_config
    )
    assert t.failures == ["body: expected 'something', got an empty body"]


def test_raw_text_mismatch_is_exact(users, app, harness_config):
    t = SoftAssertions()
    TestCase(method="GET", path="/ping", expected_response="pong ").do(users, app, t, config=harness_config)
    assert t.failures == ["body: expected 'pong ', got 'pong'"]


def test_unmet_operation_fails_at_teardown(users, app, harness_config):
    t = SoftAssertions()
    TestCase(
        operations=[Operation(name="get_user", args=[1], returns=[None])],
        method="GET",
        path="/ping",
        expected_response=b"pong",
    ).do(users, app, t, config=harness_config)
    assert t.failures == ["mock: expected call UserStore.get_user(AnyOfType(int)) was never made"]


def test_unexpected_backend_call_surfaces(users, app, harness_config):
    t = SoftAssertions()
    TestCase(method="GET", path="/users/5", expected_status=200).do(users, app, t, config=harness_config)
    assert "status: expected 200, got 500" in t.failures
    assert "mock: unexpected call UserStore.get_user(5)" in t.failures


def test_shared_operation_must_be_called_again_by_each_run(users, app, harness_config):
    operations = [Operation(name="get_user", args=[1], returns=[{"id": 1}])]
    TestCase(operations=operations, method="GET", path="/users/1").do(users, app, config=harness_config)

    t = SoftAssertions()
    TestCase(operations=operations, method="GET", path="/ping", expected_response=b"pong").do(
        users, app, t, config=harness_config
    )
    assert t.failures == ["mock: expected call UserStore.get_user(AnyOfType(int)) was never made"]


def test_unexpected_calls_are_reported_by_their_own_run_only(users, app, harness_config):
    t = SoftAssertions()
    TestCase(method="GET", path="/users/5", expected_status=500).do(users, app, t, config=harness_config)
    assert t.failures == ["mock: unexpected call UserStore.get_user(5)"]

    t = SoftAssertions()
    TestCase(method="GET", path="/ping", expected_response=b"pong").do(users, app, t, config=harness_config)
    assert t.failures == []


def test_repeated_headers_match_on_the_first_value(users, app, harness_config):
    TestCase(method="GET", path="/tags", expected_headers={"X-Tag": "^first$"}).do(
        users, app, config=harness_config
    )

    t = SoftAssertions()
    TestCase(method="GET", path="/tags", expected_headers={"X-Tag": "^second$"}).do(
        users, app, t, config=harness_config
    )
    assert t.failures == ["header X-Tag: expect 'first' to match '^second$'"]


def test_owned_context_raises_all_failures_together(users, app, harness_config):
    with pytest.raises(LitmusAssertionError) as info:
        TestCase(method="GET", path="/ping", expected_status=404, expected_response="nope").do(
            users, app, config=harness_config
        )
    assert len(info.value.failures) == 2


# ----------------------------------------------------------------------------
# Fatal aborts
# ----------------------------------------------------------------------------

def test_invalid_reference_aborts_but_still_verifies_mocks(users, app, harness_config):
    t = SoftAssertions()
    with pytest.raises(InvalidReferenceError):
        TestCase(
            operations=[Operation(name="get_user", args=[1], returns=[None])],
            method="POST",
            path="/echo",
            request=operation_arg(4),
        ).do(users, app, t, config=harness_config)
    assert t.failures == ["mock: expected call UserStore.get_user(AnyOfType(int)) was never made"]


def test_generator_failure_aborts(users, app, harness_config):
    def broken(backend, test):
        raise OSError("disk gone")

    with pytest.raises(BodyGeneratorError, match="disk gone"):
        TestCase(method="POST", path="/echo", request=broken).do(users, app, config=harness_config)


def test_failing_setup_hook_aborts_but_still_verifies_mocks(users, app, harness_config):
    def broken(request: httpx.Request) -> None:
        raise KeyError("X-Token")

    t = SoftAssertions()
    with pytest.raises(RequestBuildError, match="setup hook raised"):
        TestCase(
            operations=[Operation(name="get_user", args=[1], returns=[None])],
            method="GET",
            path="/ping",
            setup=broken,
        ).do(users, app, t, config=harness_config)
    assert t.failures == ["mock: expected call UserStore.get_user(AnyOfType(int)) was never made"]


def test_unencodable_expected_response_aborts(users, app, harness_config):
    with pytest.raises(EncodeError):
        TestCase(method="GET", path="/ping", expected_response={"when": object()}).do(
            users, app, config=harness_config
        )
