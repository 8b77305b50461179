"""Tests for the error taxonomy and its user-facing rendering."""

from __future__ import annotations

from neorium.errors import ErrorKind, NeoError, Violation, describe_error


class TestConstructors:
    def test_kinds(self):
        assert NeoError.auth("x").kind is ErrorKind.AUTH
        assert NeoError.rate_limited().kind is ErrorKind.RATE_LIMITED
        assert NeoError.api("x", status=500).kind is ErrorKind.API
        assert NeoError.network().kind is ErrorKind.NETWORK
        assert NeoError.cancelled().kind is ErrorKind.CANCELLED
        assert NeoError.unknown_tool("t").kind is ErrorKind.UNKNOWN_TOOL

    def test_rate_limited_payload(self):
        err = NeoError.rate_limited(retry_after=2.0, body={"error": "slow down"})
        assert err.status == 429
        assert err.retry_after == 2.0
        assert err.body == {"error": "slow down"}

    def test_cancelled_reason(self):
        assert NeoError.cancelled("timeout").reason == "timeout"
        assert NeoError.cancelled().reason == "cancelled"

    def test_tool_loop_carries_calls(self):
        calls = [{"id": "c1"}]
        err = NeoError.tool_loop_exceeded(calls, 3)
        assert err.tool_calls == calls
        assert "3" in err.message

    def test_invalid_tool_arguments_keeps_raw_text(self):
        err = NeoError.invalid_tool_arguments("lookup", "{not json")
        assert err.tool_name == "lookup"
        assert err.arguments == "{not json"

    def test_invalid_request_mentions_path(self):
        err = NeoError.invalid_request(
            Violation(path="temperature", constraint="less_than_equal", message="too hot"),
        )
        assert err.violation.path == "temperature"
        assert "temperature" in str(err)


class TestDescribeError:
    def test_distinct_prefixes(self):
        errors = [
            NeoError.auth("bad key"),
            NeoError.rate_limited(),
            NeoError.api("boom", status=500),
            NeoError.network(),
            NeoError.cancelled(),
            NeoError.cancelled("timeout"),
            NeoError.tool_loop_exceeded([], 5),
            NeoError.unknown_tool("nope"),
            NeoError.invalid_tool_arguments("t", "{"),
            NeoError.invalid_request(Violation(path="messages", constraint="missing")),
        ]
        prefixes = {describe_error(e).split(":", 1)[0] for e in errors}
        assert len(prefixes) == len(errors)

    def test_auth_prefix(self):
        assert describe_error(NeoError.auth("bad key")) == "Auth error: bad key"

    def test_rate_limit_hint(self):
        text = describe_error(NeoError.rate_limited(retry_after=1.5))
        assert text.startswith("Rate limited:")
        assert "retry after 1.5s" in text

    def test_api_status(self):
        assert "(status 503)" in describe_error(NeoError.api("down", status=503))

    def test_timeout_prefix(self):
        assert describe_error(NeoError.cancelled("timeout")).startswith("Timed out:")

    def test_plain_exception(self):
        assert describe_error(RuntimeError("oops")) == "oops"
        assert describe_error(RuntimeError()) == "RuntimeError"
