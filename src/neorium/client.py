"""High-level async client for the Neorium chat-completion API."""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncGenerator, Mapping

from neorium.config import ClientConfig, resolve_config
from neorium.core.completions import Completions
from neorium.llm.transport import Transport
from neorium.tools.registry import ToolRegistry
from neorium.types import CompletionRequest, CompletionResponse, StreamChunk, ToolHandler


class NeoriumClient:
    """Async client; one instance can serve many concurrent calls.

    Usage::

        async with NeoriumClient(api_key="...") as client:
            resp = await client.create({"messages": [{"role": "user", "content": "hi"}]})
            print(resp.first_message.content)

    Parameters
    ----------
    config:
        Pre-resolved configuration.  When omitted, keyword *options* are
        passed to :func:`neorium.config.resolve_config` (explicit value,
        then environment, then defaults).  A missing API key fails here,
        before any network activity.
    rng:
        Randomness source for backoff jitter.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        rng: random.Random | None = None,
        **options: Any,
    ) -> None:
        if config is None:
            config = resolve_config(**options)
        elif options:
            raise TypeError("Pass either a ClientConfig or keyword options, not both")
        self._config = config
        self._transport = Transport(config, rng=rng)
        self._completions = Completions(config, self._transport)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def completions(self) -> Completions:
        return self._completions

    async def create(
        self,
        request: CompletionRequest | Mapping[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
        tool_handlers: Mapping[str, ToolHandler] | None = None,
        tools: ToolRegistry | None = None,
        max_tool_iterations: int | None = None,
    ) -> CompletionResponse:
        """Create a completion, running the tool loop when handlers are given.

        Passing a *tools* registry advertises its schemas in the request
        (unless the request already lists tools) and uses its handlers when
        *tool_handlers* is not given.
        """
        if tools is not None:
            request = _with_tools(request, tools)
            if tool_handlers is None:
                tool_handlers = tools.handlers
        return await self._completions.create(
            request,
            cancel_event=cancel_event,
            tool_handlers=tool_handlers,
            max_tool_iterations=max_tool_iterations,
        )

    def stream(
        self,
        request: CompletionRequest | Mapping[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """Stream completion chunks (see :meth:`Completions.stream`).

        The connection is released when iteration ends.  A consumer that may
        stop early should close the iterator explicitly::

            async with contextlib.aclosing(client.stream(request)) as chunks:
                async for chunk in chunks:
                    if done(chunk):
                        break
        """
        return self._completions.stream(request, cancel_event=cancel_event)

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> NeoriumClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def _with_tools(
    request: CompletionRequest | Mapping[str, Any],
    registry: ToolRegistry,
) -> CompletionRequest | Mapping[str, Any]:
    if isinstance(request, CompletionRequest):
        if request.tools is not None:
            return request
        return request.model_copy(update={"tools": registry.tools})
    if request.get("tools") is not None:
        return request
    return {**request, "tools": registry.tools}
