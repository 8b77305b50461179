"""Error taxonomy for the Neorium client.

Every failure raised by the client is a :class:`NeoError` whose ``kind``
tells callers what happened, so they can ``match err.kind`` instead of
checking exception classes::

    try:
        resp = await client.create(request)
    except NeoError as err:
        match err.kind:
            case ErrorKind.AUTH: ...
            case ErrorKind.RATE_LIMITED: ...
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class ErrorKind(enum.Enum):
    """Discriminant for :class:`NeoError`."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    API = "api_error"
    NETWORK = "network"
    CANCELLED = "cancelled"
    TOOL_LOOP_EXCEEDED = "tool_loop_exceeded"
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_TOOL_ARGUMENTS = "invalid_tool_arguments"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class Violation:
    """First schema violation found while validating a payload."""

    path: str
    constraint: str
    message: str = ""

    def __str__(self) -> str:
        where = self.path or "<root>"
        if self.message:
            return f"{where}: {self.message} ({self.constraint})"
        return f"{where}: {self.constraint}"


class NeoError(Exception):
    """Single failure type of the client, tagged with an :class:`ErrorKind`.

    Only the payload fields relevant to ``kind`` are set; the rest stay
    ``None``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: int | None = None,
        body: Any = None,
        retry_after: float | None = None,
        reason: str | None = None,
        tool_calls: list[Any] | None = None,
        tool_name: str | None = None,
        arguments: str | None = None,
        violation: Violation | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.body = body
        self.retry_after = retry_after
        self.reason = reason
        self.tool_calls = tool_calls
        self.tool_name = tool_name
        self.arguments = arguments
        self.violation = violation

    def __repr__(self) -> str:
        return f"NeoError(kind={self.kind.value!r}, message={self.message!r})"

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def auth(cls, message: str, *, status: int | None = None) -> NeoError:
        return cls(ErrorKind.AUTH, message, status=status)

    @classmethod
    def rate_limited(
        cls,
        message: str = "Rate limited by API.",
        *,
        retry_after: float | None = None,
        body: Any = None,
    ) -> NeoError:
        return cls(
            ErrorKind.RATE_LIMITED, message,
            status=429, retry_after=retry_after, body=body,
        )

    @classmethod
    def api(cls, message: str, *, status: int | None = None, body: Any = None) -> NeoError:
        return cls(ErrorKind.API, message, status=status, body=body)

    @classmethod
    def network(cls, message: str = "Network error while calling API.") -> NeoError:
        return cls(ErrorKind.NETWORK, message)

    @classmethod
    def cancelled(cls, reason: str = "cancelled") -> NeoError:
        if reason == "timeout":
            return cls(ErrorKind.CANCELLED, "Request timed out.", reason=reason)
        return cls(ErrorKind.CANCELLED, "Request was cancelled.", reason=reason)

    @classmethod
    def tool_loop_exceeded(cls, tool_calls: list[Any], max_iterations: int) -> NeoError:
        return cls(
            ErrorKind.TOOL_LOOP_EXCEEDED,
            f"Tool loop exceeded max iterations ({max_iterations}).",
            tool_calls=list(tool_calls),
        )

    @classmethod
    def unknown_tool(cls, tool_name: str) -> NeoError:
        return cls(ErrorKind.UNKNOWN_TOOL, f"Unknown tool: {tool_name}", tool_name=tool_name)

    @classmethod
    def invalid_tool_arguments(
        cls,
        tool_name: str,
        arguments: str | None = None,
        violation: Violation | None = None,
    ) -> NeoError:
        if violation is not None:
            message = f"Invalid arguments for tool {tool_name}: {violation}"
        else:
            message = f"Invalid tool arguments JSON for tool {tool_name}."
        return cls(
            ErrorKind.INVALID_TOOL_ARGUMENTS, message,
            tool_name=tool_name, arguments=arguments, violation=violation,
        )

    @classmethod
    def invalid_request(cls, violation: Violation) -> NeoError:
        return cls(
            ErrorKind.INVALID_REQUEST,
            f"Invalid request: {violation}",
            violation=violation,
        )


_PREFIXES: dict[ErrorKind, str] = {
    ErrorKind.AUTH: "Auth error",
    ErrorKind.RATE_LIMITED: "Rate limited",
    ErrorKind.API: "API error",
    ErrorKind.NETWORK: "Network error",
    ErrorKind.CANCELLED: "Cancelled",
    ErrorKind.TOOL_LOOP_EXCEEDED: "Tool loop exceeded",
    ErrorKind.UNKNOWN_TOOL: "Unknown tool",
    ErrorKind.INVALID_TOOL_ARGUMENTS: "Invalid tool arguments",
    ErrorKind.INVALID_REQUEST: "Invalid request",
}


def describe_error(exc: BaseException) -> str:
    """Render *exc* as a one-line message with a per-kind prefix.

    Operators can tell configuration problems (auth) from transient
    service problems (rate limit, network) from programming errors
    (unknown tool) by the prefix alone.
    """
    if not isinstance(exc, NeoError):
        return str(exc) or type(exc).__name__

    if exc.kind is ErrorKind.CANCELLED and exc.reason == "timeout":
        prefix = "Timed out"
    else:
        prefix = _PREFIXES[exc.kind]

    text = f"{prefix}: {exc.message}"
    if exc.kind is ErrorKind.RATE_LIMITED and exc.retry_after is not None:
        text += f" (retry after {exc.retry_after:.1f}s)"
    elif exc.kind is ErrorKind.API and exc.status is not None:
        text += f" (status {exc.status})"
    return text
