"""
Panel Session

Selection-scoped controller wiring the panel services together:

    selection.changed -> select() -> snapshot -> organize -> remote option loads
    user edit         -> change() -> binder.write -> cascade -> organize -> option refresh

A session holds the only mutable state of the panel: the selected element,
its value snapshot, the option states and the active tab. Every selection
bumps ``generation``; option responses and debounced listener runs issued for
an older generation are dropped.
"""

import asyncio
import logging
from typing import Any, Callable, Iterable

from property_panel.models.contracts.schema import ApiOptionsSource, PropertyDefinition, PropertyPanelSchema
from property_panel.models.element import ELEMENT_CHANGED, EVENT_BUS, SELECTION_CHANGED, DiagramElement
from property_panel.models.view import PanelView
from property_panel.services.change_dispatcher import CascadeResult, ChangeCascadeDispatcher
from property_panel.services.option_resolver import OptionResolver, OptionsStore
from property_panel.services.property_validation import ValidationIssue, validate_snapshot
from property_panel.services.schema_organizer import SchemaOrganizer
from property_panel.services.value_binder import ValueBinder

logger = logging.getLogger(__name__)


class PanelSession:
    """
    Property panel state for the current selection.

    Args:
        schema: Loaded panel schema
        modeler: Toolkit capability surface (``get(service_name)``)
        resolver: Option resolver (a default one is created otherwise)
        binder: Value binder
        organizer: Schema organizer
        dispatcher: Change-cascade dispatcher
        on_update: Called with the new PanelView whenever it is rebuilt
    """

    def __init__(
        self,
        schema: PropertyPanelSchema,
        modeler: Any,
        resolver: OptionResolver | None = None,
        binder: ValueBinder | None = None,
        organizer: SchemaOrganizer | None = None,
        dispatcher: ChangeCascadeDispatcher | None = None,
        on_update: Callable[[PanelView], Any] | None = None,
    ):
        self.schema = schema
        self.modeler = modeler
        self.resolver = resolver or OptionResolver()
        self.options = OptionsStore(self.resolver)
        self.binder = binder or ValueBinder()
        self.organizer = organizer or SchemaOrganizer(self.resolver)
        self.dispatcher = dispatcher or ChangeCascadeDispatcher(schema)
        self.dispatcher.on_debounced = self._on_debounced
        self.on_update = on_update

        self.element: DiagramElement | None = None
        self.values: dict[str, Any] = {}
        self.view = PanelView()
        self.active_tab: str | None = None
        self.generation = 0
        self.errors: list[str] = []

        self._tasks: set[asyncio.Task] = set()
        self._writing = False
        self._attached = False

    # ==================== TOOLKIT EVENTS ====================

    def attach(self) -> None:
        """Subscribe to toolkit selection and content change events."""
        if self._attached:
            return
        event_bus = self.modeler.get(EVENT_BUS)
        event_bus.on(SELECTION_CHANGED, self._on_selection_changed)
        event_bus.on(ELEMENT_CHANGED, self._on_element_changed)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        event_bus = self.modeler.get(EVENT_BUS)
        event_bus.off(SELECTION_CHANGED, self._on_selection_changed)
        event_bus.off(ELEMENT_CHANGED, self._on_element_changed)
        self._attached = False

    def _on_selection_changed(self, event: dict[str, Any]) -> None:
        selection = event.get("newSelection") or []
        self.select(selection[0] if selection else None)

    def _on_element_changed(self, event: dict[str, Any]) -> None:
        element = event.get("element")
        if self._writing or element is None or self.element is None:
            return
        if element.id == self.element.id:
            self.refresh()

    # ==================== SELECTION ====================

    def select(self, element: DiagramElement | None) -> PanelView:
        """
        Show the panel for a newly selected element.

        Discards the previous snapshot, its option states and any pending
        debounced listener runs.
        """
        self.generation += 1
        self.dispatcher.cancel_pending()
        self.options.reset()
        self.errors = []
        self.element = element

        if element is None:
            self.values = {}
            self.view = PanelView()
            self._notify()
            return self.view

        logger.debug(f"Selected {element.type} {element.id}")
        self.values = self.binder.build_snapshot(self.schema, element)
        self._reorganize()
        self._refresh_options(changed=None)
        return self.view

    def refresh(self) -> PanelView:
        """Rebuild the snapshot after the selected element changed underneath."""
        if self.element is None:
            return self.view
        self.values = self.binder.build_snapshot(self.schema, self.element)
        self._reorganize()
        self._refresh_options(changed=None)
        return self.view

    def set_active_tab(self, tab_id: str) -> str | None:
        """Switch tabs; unknown or hidden tabs leave the selection unchanged."""
        if tab_id in self.view.tab_ids():
            self.active_tab = tab_id
            self.view.active_tab = tab_id
        return self.active_tab

    # ==================== EDITS ====================

    def change(self, name: str, value: Any) -> CascadeResult:
        """
        Apply a user edit.

        Writes the value through the binder, runs the change cascade, persists
        derived values, re-organizes and refreshes affected remote options.
        """
        if self.element is None:
            logger.warning(f"Ignoring change to '{name}' with no element selected")
            return CascadeResult(updated_values=dict(self.values))

        prop = self.schema.get_property(name)
        if self.binder.is_read_only(name, prop):
            logger.debug(f"Ignoring change to read-only field '{name}'")
            return CascadeResult(updated_values=dict(self.values))

        self._write(name, value, prop)
        result = self.dispatcher.on_value_changed(name, value, self.values, self.element, self.modeler)
        for field in result.changed:
            self._write(field, result.updated_values[field], self.schema.get_property(field))

        self.values = result.updated_values
        self.errors = list(result.errors)
        self._reorganize()
        self._refresh_options(changed=[name, *result.changed])
        return result

    def _write(self, name: str, value: Any, prop: PropertyDefinition | None) -> None:
        self._writing = True
        try:
            self.binder.write(self.element, name, value, self.modeler, prop)
        finally:
            self._writing = False

    def _on_debounced(self, result: CascadeResult) -> None:
        if self.element is None:
            return
        for field in result.changed:
            value = result.updated_values[field]
            self._write(field, value, self.schema.get_property(field))
            self.values[field] = value
        self.errors = list(result.errors)
        if result.changed or result.errors:
            self._reorganize()
            self._refresh_options(changed=result.changed)

    def validate(self) -> list[ValidationIssue]:
        return validate_snapshot(self.view, self.values, self.element)

    # ==================== OPTIONS ====================

    def _refresh_options(self, changed: Iterable[str] | None) -> None:
        """Load remote options for visible fields (all of them when ``changed`` is None)."""
        changed = set(changed) if changed is not None else None
        for view in self.view.iter_properties():
            source = view.definition.options_source
            if not isinstance(source, ApiOptionsSource):
                continue
            if changed is not None and not (set(source.dependencies) & changed) and not (
                self.options.needs_refresh(view.definition, self.values)
            ):
                continue
            self._schedule_load(view.definition)

    def _schedule_load(self, prop: PropertyDefinition) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; options for {prop.name} load on load_options()")
            return
        task = loop.create_task(self._load(prop, self.generation, dict(self.values)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load(
        self,
        prop: PropertyDefinition,
        generation: int,
        values: dict[str, Any] | None = None,
    ) -> None:
        if values is None:
            values = dict(self.values)
        state = await self.options.load(prop, self.element, values, self.modeler)
        if state is None or generation != self.generation:
            return
        self._reorganize()

    async def load_options(self, names: Iterable[str] | None = None) -> None:
        """Load remote options now for the given (or every visible) field."""
        wanted = set(names) if names is not None else None
        loads = [
            self._load(view.definition, self.generation)
            for view in self.view.iter_properties()
            if isinstance(view.definition.options_source, ApiOptionsSource)
            and (wanted is None or view.name in wanted)
        ]
        await asyncio.gather(*loads)

    async def wait_idle(self) -> None:
        """Wait for every scheduled option load to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self.detach()
        self.dispatcher.cancel_pending()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.resolver.aclose()

    # ==================== VIEW ====================

    def _reorganize(self) -> None:
        self.view = self.organizer.organize(
            self.schema,
            self.element,
            self.values,
            model=self.modeler,
            option_states=self.options.states(),
            current_tab=self.active_tab,
        )
        self.active_tab = self.view.active_tab
        self._notify()

    def _notify(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self.view)
        except Exception as e:
            logger.warning(f"Panel update callback failed: {e}")
