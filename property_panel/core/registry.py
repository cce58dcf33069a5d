"""
Capability Registry

Maps string names to implementations. Schemas written as data (YAML/JSON)
cannot carry callables, so anything executable - function conditions,
option getters, change listener handlers, custom renderers - is referenced
by name and resolved against a registry once, when the schema is loaded.
"""

import logging
from typing import Any, Callable, Generic, Iterator, TypeVar

from property_panel.core.exceptions import SchemaConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Registry(Generic[T]):
    """
    Name -> implementation lookup.

    Usage:
        handlers = Registry[Callable]("handler")

        @handlers.register("is_boundary_event")
        def is_boundary_event(element, values, model=None):
            return element.type == "bpmn:BoundaryEvent"
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._items: dict[str, T] = {}

    def register(self, name: str, item: T | None = None) -> Any:
        """
        Register an implementation under a name.

        Can be called directly (``register("x", fn)``) or used as a decorator
        (``@register("x")``).
        """
        if item is not None:
            self._add(name, item)
            return item

        def decorator(fn: T) -> T:
            self._add(name, fn)
            return fn

        return decorator

    def _add(self, name: str, item: T) -> None:
        if name in self._items and self._items[name] is not item:
            logger.warning(f"Replacing registered {self.kind} '{name}'")
        self._items[name] = item

    def get(self, name: str) -> T | None:
        return self._items.get(name)

    def has(self, name: str) -> bool:
        return name in self._items

    def require(self, name: str) -> T:
        """
        Resolve a name or fail with a configuration error.

        Raises:
            SchemaConfigurationError: If nothing is registered under ``name``
        """
        try:
            return self._items[name]
        except KeyError:
            raise SchemaConfigurationError(
                f"Unknown {self.kind} '{name}' (registered: {sorted(self._items)})"
            ) from None

    def names(self) -> list[str]:
        return sorted(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


HandlerRegistry = Registry[Callable[..., Any]]
