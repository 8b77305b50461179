"""Reassemble streamed tool calls.

The client never dispatches tool calls on the streaming path; callers that
want them can feed every chunk into a :class:`ToolCallAccumulator`.
"""

from __future__ import annotations

from neorium.types import FunctionCall, StreamChunk, ToolCall


class ToolCallAccumulator:
    """Accumulate ``delta.tool_calls`` fragments from streaming chunks.

    OpenAI-compatible servers send tool calls as incremental fragments:
    each has an ``index``, the ``id`` and ``function.name`` arrive once,
    and ``function.arguments`` pieces must be concatenated.
    """

    def __init__(self, choice_index: int = 0) -> None:
        self._choice_index = choice_index
        self._calls: dict[int, dict[str, str]] = {}

    def feed(self, chunk: StreamChunk) -> None:
        """Process the tool-call fragments of one chunk."""
        for choice in chunk.choices:
            if choice.index != self._choice_index or not choice.delta.tool_calls:
                continue
            for tc in choice.delta.tool_calls:
                idx = tc.index if tc.index is not None else 0
                entry = self._calls.setdefault(
                    idx, {"id": "", "name": "", "arguments": ""},
                )
                if tc.id:
                    entry["id"] = tc.id
                if tc.function is None:
                    continue
                if tc.function.name:
                    entry["name"] = tc.function.name
                if tc.function.arguments:
                    entry["arguments"] += tc.function.arguments

    def has_calls(self) -> bool:
        return bool(self._calls)

    def finalize(self) -> list[ToolCall]:
        """Complete tool calls in index order; nameless fragments are dropped."""
        result: list[ToolCall] = []
        for idx in sorted(self._calls):
            entry = self._calls[idx]
            if not entry["name"]:
                continue
            result.append(
                ToolCall(
                    id=entry["id"] or f"call_{idx}",
                    function=FunctionCall(
                        name=entry["name"], arguments=entry["arguments"],
                    ),
                )
            )
        return result
