"""Tests for request normalization and the wire types."""

from __future__ import annotations

import copy

import pytest

from neorium.core.normalizer import normalize_request
from neorium.errors import ErrorKind, NeoError
from neorium.types import ChatMessage, CompletionRequest, CompletionResponse


def _request(**extra):
    req = {"messages": [{"role": "user", "content": "hi"}]}
    req.update(extra)
    return req


def _violation(raw):
    with pytest.raises(NeoError) as exc_info:
        normalize_request(raw, "neorium-1", stream=False)
    assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
    return exc_info.value.violation


class TestNormalize:
    def test_fills_default_model(self):
        req = normalize_request(_request(), "neorium-1", stream=False)
        assert req.model == "neorium-1"
        assert req.stream is False

    def test_keeps_explicit_model(self):
        req = normalize_request(_request(model="custom"), "neorium-1", stream=True)
        assert req.model == "custom"
        assert req.stream is True

    def test_does_not_mutate_input(self):
        raw = _request(temperature=0.5)
        before = copy.deepcopy(raw)
        req = normalize_request(raw, "neorium-1", stream=True)
        assert raw == before
        req.messages[0].content = "changed"
        assert raw["messages"][0]["content"] == "hi"

    def test_model_input_is_copied(self):
        original = CompletionRequest(messages=[ChatMessage(role="user", content="hi")])
        req = normalize_request(original, "neorium-1", stream=False)
        assert req is not original
        assert req.messages[0] is not original.messages[0]
        assert original.model is None

    def test_body_omits_unset_fields(self):
        body = normalize_request(_request(), "neorium-1", stream=False).to_body()
        assert body == {
            "model": "neorium-1",
            "messages": [{"role": "user", "content": "hi"}],
            "stream": False,
        }

    def test_tool_message_round_trip(self):
        raw = _request()
        raw["messages"] += [
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "c1", "type": "function",
                    "function": {"name": "lookup", "arguments": "{}"},
                }],
            },
            {"role": "tool", "tool_call_id": "c1", "content": "42"},
        ]
        req = normalize_request(raw, "neorium-1", stream=False)
        assert req.messages[1].tool_calls[0].function.name == "lookup"
        assert req.messages[2].tool_call_id == "c1"


class TestValidation:
    @pytest.mark.parametrize("temperature", [-0.1, 2.01, 5])
    def test_temperature_out_of_range(self, temperature):
        violation = _violation(_request(temperature=temperature))
        assert violation.path == "temperature"

    @pytest.mark.parametrize("temperature", [0, 1.3, 2])
    def test_temperature_in_range(self, temperature):
        req = normalize_request(_request(temperature=temperature), "m", stream=False)
        assert req.temperature == temperature

    @pytest.mark.parametrize("max_tokens", [0, -5, 1.5, "10"])
    def test_max_tokens_must_be_positive_int(self, max_tokens):
        violation = _violation(_request(max_tokens=max_tokens))
        assert violation.path == "max_tokens"

    def test_unknown_top_level_field(self):
        violation = _violation(_request(top_k=3))
        assert violation.path == "top_k"
        assert violation.constraint == "extra_forbidden"

    def test_extra_message_field(self):
        raw = {"messages": [{"role": "user", "content": "hi", "mood": "happy"}]}
        violation = _violation(raw)
        assert violation.path == "messages.0.mood"

    def test_bad_role(self):
        violation = _violation({"messages": [{"role": "robot", "content": "hi"}]})
        assert violation.path == "messages.0.role"

    def test_missing_messages(self):
        violation = _violation({"model": "m"})
        assert violation.path == "messages"
        assert violation.constraint == "missing"

    def test_not_a_mapping(self):
        with pytest.raises(NeoError) as exc_info:
            normalize_request(["hi"], "m", stream=False)  # type: ignore[arg-type]
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST


class TestResponseValidation:
    def _body(self, **overrides):
        body = {
            "id": "x",
            "object": "chat.completion",
            "created": 1,
            "model": "neorium-1",
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": "ok", "refusal": None},
                "finish_reason": "stop",
            }],
            "system_fingerprint": "fp",
        }
        body.update(overrides)
        return body

    def test_extra_fields_tolerated(self):
        resp = CompletionResponse.model_validate(self._body())
        assert resp.first_message.content == "ok"
        assert resp.usage is None

    def test_required_fields_enforced(self):
        body = self._body()
        del body["id"]
        with pytest.raises(ValueError):
            CompletionResponse.model_validate(body)

    def test_null_finish_reason_allowed(self):
        body = self._body()
        body["choices"][0]["finish_reason"] = None
        resp = CompletionResponse.model_validate(body)
        assert resp.choices[0].finish_reason is None

    def test_no_choices(self):
        resp = CompletionResponse.model_validate(self._body(choices=[]))
        assert resp.first_message is None
