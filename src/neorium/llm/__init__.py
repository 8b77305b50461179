"""HTTP transport and stream decoding for Neorium."""

from neorium.llm.accumulator import ToolCallAccumulator
from neorium.llm.sse import DONE_SENTINEL, iter_sse_events
from neorium.llm.transport import Transport, TransportResponse

__all__ = [
    "DONE_SENTINEL",
    "ToolCallAccumulator",
    "Transport",
    "TransportResponse",
    "iter_sse_events",
]
