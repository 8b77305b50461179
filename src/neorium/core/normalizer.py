"""Validate and complete outbound chat-completion requests."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from neorium.errors import NeoError, Violation
from neorium.types import CompletionRequest


def first_violation(exc: ValidationError) -> Violation:
    """Turn the first pydantic error into a :class:`Violation`."""
    errors = exc.errors()
    if not errors:
        return Violation(path="", constraint="invalid", message=str(exc))
    err = errors[0]
    path = ".".join(str(part) for part in err.get("loc", ()))
    return Violation(
        path=path,
        constraint=err.get("type", "invalid"),
        message=err.get("msg", ""),
    )


def normalize_request(
    raw: CompletionRequest | Mapping[str, Any],
    default_model: str,
    *,
    stream: bool,
) -> CompletionRequest:
    """Return a validated, independent copy of *raw* ready to send.

    ``model`` is filled with *default_model* only when absent and
    ``stream`` is forced to the given value.  *raw* is never modified.

    Raises
    ------
    NeoError
        ``ErrorKind.INVALID_REQUEST`` describing the first violation.
    """
    if isinstance(raw, BaseModel):
        # Re-validate: models built with model_construct() skip checks.
        raw = raw.model_dump(exclude_unset=True)
    if not isinstance(raw, Mapping):
        raise NeoError.invalid_request(
            Violation(path="", constraint="type", message="request must be a mapping"),
        )
    try:
        request = CompletionRequest.model_validate(dict(raw))
    except ValidationError as e:
        raise NeoError.invalid_request(first_violation(e)) from e

    # model_validate copies dicts but may keep nested model instances.
    request = request.model_copy(deep=True)
    return request.model_copy(
        update={"model": request.model or default_model, "stream": stream},
    )
