"""Chat completions: request/response with a bounded tool loop, and streaming.

    normalize → transport → validate → (execute tools → append → resend)*

The tool loop only runs for non-streaming calls and only when the caller
supplies handlers.  Its state (message history, iteration counter) is
local to each ``create()`` call.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, AsyncIterator, Mapping

from pydantic import ValidationError

from neorium.config import ClientConfig
from neorium.core.normalizer import first_violation, normalize_request
from neorium.errors import NeoError
from neorium.llm.cancellation import Deadline, check_cancelled, run_cancellable
from neorium.llm.sse import DONE_SENTINEL, iter_sse_events
from neorium.llm.transport import Transport
from neorium.types import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    ResponseToolCall,
    StreamChunk,
    ToolContext,
    ToolHandler,
)

_logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"


def _parse_arguments(call: ResponseToolCall) -> Any:
    raw = call.function.arguments
    if not raw or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise NeoError.invalid_tool_arguments(call.function.name, raw) from e


class Completions:
    """Drives ``create`` and ``stream`` operations against the API.

    Parameters
    ----------
    config:
        Resolved client configuration (default model, timeout, loop bound).
    transport:
        Transport used for every network call.
    """

    def __init__(self, config: ClientConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    async def create(
        self,
        request: CompletionRequest | Mapping[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
        tool_handlers: Mapping[str, ToolHandler] | None = None,
        max_tool_iterations: int | None = None,
    ) -> CompletionResponse:
        """Send a completion request, running requested tools until a final answer.

        Returns the first response whose top choice has no tool calls, or
        any response when *tool_handlers* is ``None`` (tool calls are then
        returned to the caller unexecuted).

        Raises
        ------
        NeoError
            ``TOOL_LOOP_EXCEEDED`` after ``max_tool_iterations + 1`` calls
            that all requested tools; ``UNKNOWN_TOOL`` /
            ``INVALID_TOOL_ARGUMENTS`` for unresolvable calls; any transport
            error unchanged.  Handler exceptions propagate as raised.
        """
        normalized = normalize_request(request, self._config.model, stream=False)
        max_iterations = (
            self._config.max_tool_iterations
            if max_tool_iterations is None else max_tool_iterations
        )
        if max_iterations < 0:
            raise ValueError(f"max_tool_iterations must be >= 0, got {max_iterations}")

        messages: list[ChatMessage] = list(normalized.messages)
        iteration = 0

        while True:
            check_cancelled(cancel_event)
            turn = normalized.model_copy(update={"messages": messages})
            response = await self._send(turn, cancel_event)

            message = response.first_message
            if message is None or not message.has_tool_calls or tool_handlers is None:
                return response

            tool_calls = message.tool_calls or []
            if iteration >= max_iterations:
                raise NeoError.tool_loop_exceeded(tool_calls, max_iterations)

            _logger.debug(
                "Tool loop iteration %d/%d: %d call(s)",
                iteration + 1, max_iterations, len(tool_calls),
            )
            tool_messages = await self._run_tools(
                tool_calls, tool_handlers, cancel_event,
            )
            messages = [*messages, message.to_chat_message(), *tool_messages]
            iteration += 1

    async def _send(
        self,
        request: CompletionRequest,
        cancel_event: asyncio.Event | None,
    ) -> CompletionResponse:
        result = await self._transport.send(
            COMPLETIONS_PATH, "POST", request.to_body(), cancel_event,
        )
        try:
            return CompletionResponse.model_validate(result.data)
        except ValidationError as e:
            violation = first_violation(e)
            raise NeoError.api(
                f"Invalid completion response: {violation}",
                status=result.status,
                body=result.data,
            ) from e

    async def _run_tools(
        self,
        tool_calls: list[ResponseToolCall],
        tool_handlers: Mapping[str, ToolHandler],
        cancel_event: asyncio.Event | None,
    ) -> list[ChatMessage]:
        """Execute *tool_calls* in order and build their ``tool`` messages."""
        ctx = ToolContext(cancel_event=cancel_event)
        results: list[ChatMessage] = []
        for call in tool_calls:
            name = call.function.name
            handler = tool_handlers.get(name)
            if handler is None:
                raise NeoError.unknown_tool(name)
            args = _parse_arguments(call)

            check_cancelled(cancel_event)
            result = await run_cancellable(handler(args, ctx), cancel_event)
            results.append(
                ChatMessage(
                    role="tool",
                    tool_call_id=call.id,
                    content=json.dumps(result, default=_json_default),
                )
            )
        return results

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        request: CompletionRequest | Mapping[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """Stream completion chunks.

        One connection, never retried.  The configured timeout bounds the
        whole stream, not each read.  Tool-call fragments are passed
        through untouched.
        """
        normalized = normalize_request(request, self._config.model, stream=True)
        check_cancelled(cancel_event)
        deadline = Deadline(self._config.timeout)

        async with self._transport.open_stream(
            COMPLETIONS_PATH, normalized.to_body(), cancel_event, deadline.remaining,
        ) as resp:
            events = iter_sse_events(resp.aiter_bytes(), terminator=None)
            try:
                while True:
                    payload = await run_cancellable(
                        _next_event(events), cancel_event, deadline.remaining,
                    )
                    if payload is None or payload == DONE_SENTINEL:
                        return
                    yield _decode_chunk(payload)
            finally:
                await events.aclose()


async def _next_event(events: AsyncIterator[str]) -> str | None:
    try:
        return await events.__anext__()
    except StopAsyncIteration:
        return None


def _decode_chunk(payload: str) -> StreamChunk:
    try:
        return StreamChunk.model_validate_json(payload)
    except ValidationError as e:
        raise NeoError.api(
            f"Invalid stream chunk: {first_violation(e)}", body=payload,
        ) from e


def _json_default(value: Any) -> Any:
    # Tool results may be pydantic models.
    dump = getattr(value, "model_dump", None)
    if dump is not None:
        return dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
