"""Minimal server-sent events decoder.

Supports ``data:`` lines and blank-line event delimiters, which is all the
chat-completion stream uses.  ``event:``/``id:``/``retry:`` fields and
comments are ignored.
"""

from __future__ import annotations

import codecs
from typing import AsyncIterable, AsyncIterator

DONE_SENTINEL = "[DONE]"

_DATA_PREFIX = "data:"


def _event_payload(raw_event: str) -> str:
    data_lines = [
        line[len(_DATA_PREFIX):].lstrip()
        for line in raw_event.split("\n")
        if line.startswith(_DATA_PREFIX)
    ]
    return "\n".join(data_lines)


async def iter_sse_events(
    chunks: AsyncIterable[bytes],
    terminator: str | None = DONE_SENTINEL,
) -> AsyncIterator[str]:
    """Yield the data payload of each event in *chunks*.

    Empty payloads are skipped.  A payload equal to *terminator* ends the
    sequence without being yielded; pass ``terminator=None`` to receive it
    as a regular payload.  Bytes left over without a closing blank line
    when the stream ends are dropped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        # A CR may be split from its LF across reads; keep it buffered.
        buffer = buffer.replace("\r\n", "\n")
        while True:
            idx = buffer.find("\n\n")
            if idx == -1:
                break
            raw_event, buffer = buffer[:idx], buffer[idx + 2:]

            data = _event_payload(raw_event)
            if not data:
                continue
            if terminator is not None and data == terminator:
                return
            yield data
