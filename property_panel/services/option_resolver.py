"""
Option Resolver

Resolves the selectable choices of a field from one of three sources:

- a literal list declared in the schema (returned verbatim, in order)
- a function source, called synchronously with (element, values, model)
- a remote source, fetched over HTTP and mapped item by item via dot-paths

Remote fetches are the only suspension point in the panel. ``OptionsStore``
keeps per-field option state for one value snapshot and applies
last-requested-wins: a response is only applied if no newer request for the
same field was issued and the snapshot has not been replaced since.
"""

import json
import logging
import re
from typing import Any, Iterable

import httpx
from property_panel.config import get_settings
from property_panel.core.exceptions import OptionsResolutionError
from property_panel.models.contracts.schema import (
    ApiOptionsSource,
    FunctionOptionsSource,
    PropertyDefinition,
    PropertyOption,
    ResponseMapping,
)
from property_panel.models.element import DiagramElement
from property_panel.models.enums import HttpMethod
from property_panel.models.view import OptionsState
from property_panel.services.condition_evaluator import MISSING, get_path, lookup_field

logger = logging.getLogger(__name__)

_FALLBACK_LABEL_KEYS = ("label", "name", "title")
_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def render_template(template: str, values: dict[str, Any]) -> str:
    """Fill ``{field}`` placeholders from the value snapshot (unknown fields -> "")."""

    def fill(match: re.Match) -> str:
        value = lookup_field(values, match.group(1).strip())
        if value is None or value is MISSING:
            return ""
        return str(value)

    return _PLACEHOLDER.sub(fill, template)


def _render_static(data: dict[str, Any], values: dict[str, Any]) -> dict[str, Any]:
    return {
        key: render_template(value, values) if isinstance(value, str) else value
        for key, value in data.items()
    }


def coerce_options(items: Iterable[Any]) -> list[PropertyOption]:
    """Normalize raw option items (models, dicts, scalars) to PropertyOption."""
    options: list[PropertyOption] = []
    for item in items:
        if isinstance(item, PropertyOption):
            options.append(item)
        elif isinstance(item, dict):
            options.append(PropertyOption.model_validate(item))
        else:
            options.append(PropertyOption(label=str(item), value=item))
    return options


def map_response_item(item: Any, mapping: ResponseMapping | None) -> PropertyOption | None:
    """
    Map one remote response item to an option.

    Strings and other scalars become ``{label: item, value: item}``. Without a
    mapping, label falls back through label/name/title/value and value
    through value/id.
    """
    if not isinstance(item, dict):
        if item is None:
            return None
        return PropertyOption(label=str(item), value=item)

    if mapping is not None:
        value = get_path(item, mapping.value)
        label = get_path(item, mapping.label)
        icon = get_path(item, mapping.icon) if mapping.icon else MISSING
        disabled = get_path(item, mapping.disabled) if mapping.disabled else MISSING
        description = get_path(item, mapping.description) if mapping.description else item.get("description", MISSING)
    else:
        value = item.get("value", item.get("id", MISSING))
        label = next((item[key] for key in _FALLBACK_LABEL_KEYS if item.get(key)), MISSING)
        icon = item.get("icon", MISSING)
        disabled = item.get("disabled", MISSING)
        description = item.get("description", MISSING)

    if value is MISSING:
        logger.warning(f"Skipping option item without a value: {item}")
        return None

    return PropertyOption(
        label=str(value) if label is MISSING or label is None else str(label),
        value=value,
        icon=None if icon is MISSING or icon is None else str(icon),
        disabled=False if disabled is MISSING else bool(disabled),
        description=None if description is MISSING or description is None else str(description),
        color=item.get("color"),
    )


class OptionResolver:
    """
    Resolves option lists for properties.

    Args:
        client: Optional preconfigured httpx.AsyncClient (owned by the caller)
        base_url: Base URL for relative endpoints (defaults to settings)
        timeout: Request timeout in seconds (defaults to settings)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url if base_url is not None else settings.options_base_url
        self.timeout = timeout if timeout is not None else settings.options_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def resolve_sync(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: dict[str, Any],
        model: Any = None,
    ) -> list[PropertyOption] | None:
        """
        Resolve literal and function sources.

        Returns None for remote sources, which must go through ``resolve``.
        """
        if prop.options is None:
            return []
        if isinstance(prop.options, list):
            return list(prop.options)
        if isinstance(prop.options, FunctionOptionsSource):
            try:
                return coerce_options(prop.options.getter(element, values, model) or [])
            except Exception as e:
                logger.warning(f"Options function for {prop.name} failed: {e}")
                return []
        return None

    async def resolve(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: dict[str, Any],
        model: Any = None,
    ) -> OptionsState:
        """
        Resolve options from any source.

        Remote failures never raise; they come back as an empty option list
        with ``error`` set for display next to the field.
        """
        options = self.resolve_sync(prop, element, values, model)
        if options is not None:
            return OptionsState(options=options)

        try:
            options = await self.fetch_remote(prop, element, values)
        except OptionsResolutionError as e:
            logger.warning(f"Error fetching options for {prop.name}: {e.message}")
            return OptionsState(error=e.message)
        return OptionsState(options=options)

    def build_request(self, source: ApiOptionsSource, values: dict[str, Any]) -> httpx.Request:
        """Build the HTTP request for a remote source from the value snapshot."""
        url = render_template(source.endpoint, values)

        if callable(source.params):
            params = source.params(values) or {}
        else:
            params = _render_static(source.params or {}, values)
        params = {key: value for key, value in params.items() if value is not None}

        body: Any = None
        if source.method == HttpMethod.POST:
            if callable(source.body):
                body = source.body(values)
            elif source.body is not None:
                body = _render_static(source.body, values)

        return self._http().build_request(
            source.method.value,
            url,
            params=params or None,
            json=body,
            headers=source.headers or None,
        )

    async def fetch_remote(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: dict[str, Any],
        request: httpx.Request | None = None,
    ) -> list[PropertyOption]:
        """
        Fetch and map options from a remote source.

        Raises:
            OptionsResolutionError: On transport errors, non-2xx responses,
                non-JSON bodies or a failing transform
        """
        source = prop.options_source
        if not isinstance(source, ApiOptionsSource):
            raise OptionsResolutionError(f"{prop.name} has no remote option source", prop.name)

        if request is None:
            try:
                request = self.build_request(source, values)
            except Exception as e:
                raise OptionsResolutionError(f"Could not build options request: {e}", prop.name) from e

        try:
            response = await self._http().send(request)
        except httpx.HTTPError as e:
            raise OptionsResolutionError(f"Failed to fetch options: {e}", prop.name) from e

        if not response.is_success:
            raise OptionsResolutionError(
                f"Failed to fetch options: {response.status_code} {response.reason_phrase}",
                prop.name,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise OptionsResolutionError(f"Options response is not JSON: {e}", prop.name) from e

        mapping = source.response_mapping
        if mapping is not None and mapping.items:
            data = get_path(data, mapping.items)
        if not isinstance(data, list):
            raise OptionsResolutionError("Options response is not a JSON array", prop.name)

        options = [option for option in (map_response_item(item, mapping) for item in data) if option]

        if source.transform is not None:
            try:
                options = coerce_options(source.transform(options, element, values) or [])
            except Exception as e:
                raise OptionsResolutionError(f"Options transform failed: {e}", prop.name) from e

        return options


def request_key(request: httpx.Request) -> str:
    """Stable identity of a request, used for the per-snapshot cache."""
    body = request.content.decode("utf-8", errors="replace") if request.content else ""
    return json.dumps([request.method, str(request.url), body])


class OptionsStore:
    """
    Option state for every field of one value snapshot.

    ``reset()`` must be called whenever a new element is selected; responses
    for requests issued before the reset are discarded.
    """

    def __init__(self, resolver: OptionResolver):
        self.resolver = resolver
        self.generation = 0
        self._tokens: dict[str, int] = {}
        self._states: dict[str, OptionsState] = {}
        self._cache: dict[tuple[str, str], list[PropertyOption]] = {}
        self._last_request: dict[str, str] = {}

    def reset(self) -> None:
        self.generation += 1
        self._tokens.clear()
        self._states.clear()
        self._cache.clear()
        self._last_request.clear()

    def state(self, name: str) -> OptionsState | None:
        return self._states.get(name)

    def states(self) -> dict[str, OptionsState]:
        return dict(self._states)

    def set_state(self, name: str, state: OptionsState) -> None:
        self._states[name] = state

    def needs_refresh(self, prop: PropertyDefinition, values: dict[str, Any]) -> bool:
        """Whether the request a remote source would send differs from the last one."""
        source = prop.options_source
        if not isinstance(source, ApiOptionsSource):
            return False
        try:
            key = request_key(self.resolver.build_request(source, values))
        except Exception:
            return True
        return self._last_request.get(prop.name) != key

    async def load(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: dict[str, Any],
        model: Any = None,
    ) -> OptionsState | None:
        """
        Resolve options for a field and store the result.

        Returns the applied state, or None if the result was stale and
        discarded.
        """
        source = prop.options_source
        if not isinstance(source, ApiOptionsSource):
            state = await self.resolver.resolve(prop, element, values, model)
            self._states[prop.name] = state
            return state

        generation = self.generation
        token = self._tokens.get(prop.name, 0) + 1
        self._tokens[prop.name] = token

        try:
            request = self.resolver.build_request(source, values)
        except Exception as e:
            logger.warning(f"Could not build options request for {prop.name}: {e}")
            state = OptionsState(error=f"Could not build options request: {e}")
            self._states[prop.name] = state
            return state

        key = request_key(request)
        self._last_request[prop.name] = key
        cached = self._cache.get((prop.name, key))
        if cached is not None:
            state = OptionsState(options=list(cached))
            self._states[prop.name] = state
            return state

        previous = self._states.get(prop.name)
        self._states[prop.name] = OptionsState(
            options=list(previous.options) if previous else [], loading=True)

        try:
            options = await self.resolver.fetch_remote(prop, element, values, request=request)
            state = OptionsState(options=options)
        except OptionsResolutionError as e:
            logger.warning(f"Error fetching options for {prop.name}: {e.message}")
            state = OptionsState(error=e.message)

        if generation != self.generation or self._tokens.get(prop.name) != token:
            logger.debug(f"Discarding stale options response for {prop.name}")
            return None

        if state.error is None:
            self._cache[(prop.name, key)] = list(state.options)
        self._states[prop.name] = state
        return state
