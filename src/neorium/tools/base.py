"""Async Tool base class.

A :class:`Tool` bundles the schema advertised to the model with an async
handler that validates its own arguments.  Instances are callable with
``(args, ctx)``, so they can be used anywhere a ``ToolHandler`` is expected.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match
from pydantic import BaseModel, ValidationError

from neorium.core.normalizer import first_violation
from neorium.errors import NeoError, Violation
from neorium.types import FunctionSchema, ToolContext, ToolSchema


class Tool(ABC):
    """Base class for executable tools.

    Subclasses set ``name`` and ``description`` and either an
    ``args_model`` (a pydantic model describing the arguments) or a raw
    JSON-schema ``parameters`` dict, then implement :meth:`run`.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    args_model: ClassVar[type[BaseModel] | None] = None
    parameters: ClassVar[dict[str, Any] | None] = None

    @abstractmethod
    async def run(self, args: Any, ctx: ToolContext) -> Any:
        """Execute the tool with already validated *args*."""

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema for the tool's arguments."""
        if self.args_model is not None:
            return self.args_model.model_json_schema()
        if self.parameters is not None:
            return self.parameters
        return {"type": "object", "properties": {}}

    def to_schema(self) -> ToolSchema:
        """Convert to the function-calling format sent in ``request.tools``."""
        return ToolSchema(
            function=FunctionSchema(
                name=self.name,
                description=self.description,
                parameters=self.parameters_schema(),
            )
        )

    def validate_args(self, args: Any) -> Any:
        """Check *args* against ``args_model``, else the raw ``parameters`` schema.

        Returns the model instance when there is a model, otherwise *args*
        unchanged.
        """
        if self.args_model is not None:
            try:
                return self.args_model.model_validate(args)
            except ValidationError as e:
                raise NeoError.invalid_tool_arguments(
                    self.name, violation=first_violation(e),
                ) from e
        if self.parameters is not None:
            error = best_match(Draft202012Validator(self.parameters).iter_errors(args))
            if error is not None:
                raise NeoError.invalid_tool_arguments(
                    self.name,
                    violation=Violation(
                        path=".".join(str(part) for part in error.absolute_path),
                        constraint=str(error.validator),
                        message=error.message,
                    ),
                )
        return args

    async def __call__(self, args: Any, ctx: ToolContext) -> Any:
        return await self.run(self.validate_args(args), ctx)
