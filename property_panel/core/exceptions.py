"""
Core Exceptions

Custom exceptions for the property panel engine.

Only schema loading is allowed to fail loudly. Everything that happens while
a panel is being evaluated for a selected element degrades to a safe default
(hidden field, empty option list) and is logged instead.
"""


class PropertyPanelError(Exception):
    """Base class for all property panel errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class SchemaConfigurationError(PropertyPanelError):
    """
    Raised when a panel schema is internally inconsistent.

    Examples:
    - Two properties share the same name
    - A tab references a group id that does not exist
    - A property names a renderer or handler that was never registered
    """


class CascadeCycleError(SchemaConfigurationError):
    """
    Raised when a change listener re-triggers its own watched field, or a
    single edit keeps cascading past the configured depth cap.

    The dispatcher catches this and reports it in the cascade result; it is
    never propagated to the rendering layer.
    """

    def __init__(self, message: str, chain: list[str] | None = None):
        self.chain = chain or []
        super().__init__(message)


class OptionsResolutionError(PropertyPanelError):
    """Raised when a remote option source cannot be loaded."""

    def __init__(
        self,
        message: str,
        property_name: str,
        status_code: int | None = None,
    ):
        self.property_name = property_name
        self.status_code = status_code
        super().__init__(message)
