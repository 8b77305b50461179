"""Tests for the NeoriumClient facade."""

from __future__ import annotations

import asyncio

import pytest

from neorium import NeoriumClient, ToolRegistry
from neorium.errors import ErrorKind, NeoError
from neorium.types import ChatMessage, CompletionRequest

from fakes import FakeServer, json_response, make_completion, make_tool_call

HELLO = {"messages": [{"role": "user", "content": "hi"}]}


class TestConstruction:
    def test_missing_key_fails_before_network(self, monkeypatch):
        monkeypatch.delenv("NEO_APIKEY", raising=False)
        monkeypatch.delenv("neo_apikey", raising=False)
        with pytest.raises(NeoError) as exc_info:
            NeoriumClient()
        assert exc_info.value.kind is ErrorKind.AUTH

    def test_options_resolved(self):
        client = NeoriumClient(api_key="k", model="m", env={})
        assert client.config.model == "m"
        assert client.completions is not None

    def test_config_and_options_exclusive(self, make_config):
        with pytest.raises(TypeError):
            NeoriumClient(make_config(), model="other")


class TestCalls:
    async def test_user_agent_header(self, make_config):
        server = FakeServer(json_response(make_completion()))
        config = make_config(server, user_agent="neorium-cli/1.0")
        async with NeoriumClient(config) as client:
            await client.create(HELLO)
        assert server.requests[0].headers["user-agent"] == "neorium-cli/1.0"

    async def test_accepts_request_model(self, make_config):
        server = FakeServer(json_response(make_completion()))
        request = CompletionRequest(
            model="neorium-mini",
            messages=[ChatMessage(role="user", content="hi")],
        )
        async with NeoriumClient(make_config(server)) as client:
            await client.create(request)
        assert server.bodies()[0]["model"] == "neorium-mini"

    async def test_request_tools_take_precedence(self, make_config):
        server = FakeServer(json_response(make_completion()))
        registry = ToolRegistry().register(
            [{"type": "function", "function": {"name": "registry_tool"}}],
        )
        request = {
            **HELLO,
            "tools": [{"type": "function", "function": {"name": "own_tool"}}],
        }
        async with NeoriumClient(make_config(server)) as client:
            await client.create(request, tools=registry)
        names = [t["function"]["name"] for t in server.bodies()[0]["tools"]]
        assert names == ["own_tool"]

    async def test_explicit_handlers_override_registry(self, make_config):
        server = FakeServer(
            json_response(make_completion(
                content=None, tool_calls=[make_tool_call("c1", "lookup")],
            )),
            json_response(make_completion("done")),
        )
        seen = []

        async def registry_handler(args, ctx):
            seen.append("registry")

        async def explicit_handler(args, ctx):
            seen.append("explicit")

        registry = ToolRegistry().register(
            [{"type": "function", "function": {"name": "lookup"}}],
            {"lookup": registry_handler},
        )
        async with NeoriumClient(make_config(server)) as client:
            await client.create(
                HELLO, tools=registry, tool_handlers={"lookup": explicit_handler},
            )
        assert seen == ["explicit"]

    async def test_concurrent_calls_share_client(self, make_config):
        server = FakeServer(json_response(make_completion("ok")))
        async with NeoriumClient(make_config(server)) as client:
            results = await asyncio.gather(*(client.create(HELLO) for _ in range(5)))
        assert [r.first_message.content for r in results] == ["ok"] * 5
        assert server.calls == 5
