"""
Handler reference type shared by the schema contracts.

A handler is any callable a schema author plugs into the panel: function
conditions, option getters, request builders, change listeners, dynamic
defaults, custom validators. In Python-built schemas it is the callable
itself. In YAML/JSON schemas it is a string name resolved against the
``handlers`` registry passed in the pydantic validation context:

    PropertyPanelSchema.model_validate(data, context={"handlers": registry})
"""

from typing import Annotated, Any, Callable

from pydantic import BeforeValidator, PlainSerializer, ValidationInfo


def resolve_handler(value: Any, info: ValidationInfo) -> Any:
    """Transform a handler name to the registered callable using validation context."""
    if not isinstance(value, str):
        return value

    handlers = (info.context or {}).get("handlers")
    if handlers is None:
        raise ValueError(f"handler '{value}' cannot be resolved without a handler registry")

    handler = handlers.get(value)
    if handler is None:
        raise ValueError(f"unknown handler '{value}'")
    return handler


def handler_name(value: Callable[..., Any]) -> str:
    """Serialize a callable back to a portable name."""
    return getattr(value, "__name__", repr(value))


HandlerRef = Annotated[
    Callable[..., Any],
    BeforeValidator(resolve_handler),
    PlainSerializer(handler_name, return_type=str),
]
