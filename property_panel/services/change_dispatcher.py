"""
Change-Cascade Dispatcher

When a field changes, finds the listeners watching it and runs them.

- immediate listeners run synchronously, in declaration order, before
  ``on_value_changed`` returns
- debounced listeners are (re)scheduled on the running event loop; a burst of
  triggers inside the delay window yields one run with the last values
- listener updates start another round, up to ``max_depth`` rounds
- a listener that rewrites its own watched field, or a cascade that exceeds the
  depth cap, is a configuration error: logged and reported, never raised
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from property_panel.config import get_settings
from property_panel.core.exceptions import CascadeCycleError
from property_panel.models.contracts.schema import ChangeListener, PropertyDefinition, PropertyPanelSchema
from property_panel.models.element import DiagramElement
from property_panel.models.enums import TriggerMode

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Outcome of one value change (or one debounced listener run)."""

    updated_values: dict[str, Any] = field(default_factory=dict)
    changed: list[str] = field(default_factory=list)
    affected: list[str] = field(default_factory=list)
    scheduled: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "updated_values": self.updated_values,
            "changed": self.changed,
            "affected": self.affected,
            "scheduled": self.scheduled,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class _Binding:
    prop: PropertyDefinition
    index: int
    listener: ChangeListener
    watch: frozenset[str]

    @property
    def key(self) -> str:
        return f"{self.prop.name}#{self.index}"


@dataclass
class _PendingRun:
    handle: asyncio.TimerHandle
    values: dict[str, Any]
    old_values: dict[str, Any]
    element: DiagramElement | None
    model: Any


class ChangeCascadeDispatcher:
    """
    Dispatches value changes to change listeners declared in a schema.

    Args:
        schema: Panel schema
        max_depth: Maximum listener rounds per change (defaults to settings)
        default_debounce_ms: Delay for debounced listeners without one
        on_debounced: Called with the CascadeResult of every debounced run
    """

    def __init__(
        self,
        schema: PropertyPanelSchema,
        max_depth: int | None = None,
        default_debounce_ms: int | None = None,
        on_debounced: Callable[[CascadeResult], Any] | None = None,
    ):
        settings = get_settings()
        self.schema = schema
        self.max_depth = max_depth if max_depth is not None else settings.max_cascade_depth
        self.default_debounce_ms = (
            default_debounce_ms if default_debounce_ms is not None else settings.default_debounce_ms
        )
        self.on_debounced = on_debounced
        self._pending: dict[str, _PendingRun] = {}
        self._bindings = self._index_listeners(schema)

    @staticmethod
    def _index_listeners(schema: PropertyPanelSchema) -> list[_Binding]:
        known = schema.property_names() | {"id", "type"}
        bindings: list[_Binding] = []
        for prop in schema.iter_properties():
            for index, listener in enumerate(prop.change_listeners):
                dangling = [name for name in listener.watch if name not in known]
                if dangling:
                    logger.warning(
                        f"Listener {prop.name}#{index} watches unknown fields {dangling}; ignoring them")
                watch = frozenset(name for name in listener.watch if name in known)
                if watch:
                    bindings.append(_Binding(prop=prop, index=index, listener=listener, watch=watch))
        return bindings

    @property
    def pending(self) -> list[str]:
        """Keys of debounced listener runs not yet executed."""
        return list(self._pending)

    def dependents_of(self, name: str) -> list[str]:
        """Properties whose visibility, options or listeners read ``name``."""
        return [prop.name for prop in self.schema.iter_properties() if name in prop.watched_fields()]

    def on_value_changed(
        self,
        name: str,
        value: Any,
        values: Mapping[str, Any],
        element: DiagramElement | None = None,
        model: Any = None,
    ) -> CascadeResult:
        """
        Apply a user edit to the snapshot and run the resulting cascade.

        Args:
            name: Changed property
            value: New value
            values: Snapshot before the change (not mutated)
            element: Selected element
            model: External model handle passed to listeners

        Returns:
            CascadeResult with the updated snapshot; ``changed`` lists the
            fields listeners derived (the edited field is not included)
        """
        old_values = dict(values)
        new_values = dict(values)
        new_values[name] = value
        result = CascadeResult(updated_values=new_values)
        self._cascade([name], new_values, old_values, element, model, result)
        return result

    def cancel_pending(self) -> None:
        """Drop every scheduled debounced run (new selection)."""
        for run in self._pending.values():
            run.handle.cancel()
        self._pending.clear()

    # ==================== CASCADE ====================

    def _cascade(
        self,
        changed: list[str],
        values: dict[str, Any],
        old_values: dict[str, Any],
        element: DiagramElement | None,
        model: Any,
        result: CascadeResult,
    ) -> None:
        depth = 0
        while changed:
            if depth >= self.max_depth:
                self._report(result, CascadeCycleError(
                    f"Cascade exceeded {self.max_depth} rounds; still changing {changed}", chain=changed))
                return

            for name in changed:
                for dependent in self.dependents_of(name):
                    if dependent not in result.affected:
                        result.affected.append(dependent)

            round_start = dict(values)
            next_changed: list[str] = []
            for binding in self._triggered(changed):
                if binding.listener.trigger == TriggerMode.DEBOUNCED:
                    self._schedule(binding, values, old_values, element, model)
                    if binding.key not in result.scheduled:
                        result.scheduled.append(binding.key)
                    continue

                updates = self._run_listener(binding, values, old_values, element, model, result)
                for key, new_value in updates.items():
                    if key in values and values[key] == new_value:
                        continue
                    values[key] = new_value
                    if key not in next_changed:
                        next_changed.append(key)
                    if key not in result.changed:
                        result.changed.append(key)

            old_values = round_start
            changed = next_changed
            depth += 1

    def _triggered(self, changed: Iterable[str]) -> list[_Binding]:
        changed = set(changed)
        return [binding for binding in self._bindings if binding.watch & changed]

    def _run_listener(
        self,
        binding: _Binding,
        values: dict[str, Any],
        old_values: dict[str, Any],
        element: DiagramElement | None,
        model: Any,
        result: CascadeResult,
    ) -> dict[str, Any]:
        try:
            updates = binding.listener.handler(dict(values), dict(old_values), element, model)
        except Exception as e:
            logger.warning(f"Change listener {binding.key} failed: {e}")
            result.errors.append(f"Change listener {binding.key} failed: {e}")
            return {}

        if updates is None:
            return {}
        if not isinstance(updates, Mapping):
            logger.warning(f"Change listener {binding.key} returned {type(updates).__name__}, expected a mapping")
            result.errors.append(f"Change listener {binding.key} returned an invalid result")
            return {}

        rewritten = sorted(
            key for key in updates
            if key in binding.watch and (key not in values or values[key] != updates[key])
        )
        if rewritten:
            self._report(result, CascadeCycleError(
                f"Change listener {binding.key} rewrites its own watched field(s) {rewritten}",
                chain=[binding.key, *rewritten]))
            return {}
        return dict(updates)

    @staticmethod
    def _report(result: CascadeResult, error: CascadeCycleError) -> None:
        logger.error(f"Cascade cycle: {error.message}")
        result.errors.append(error.message)

    # ==================== DEBOUNCE ====================

    def _schedule(
        self,
        binding: _Binding,
        values: dict[str, Any],
        old_values: dict[str, Any],
        element: DiagramElement | None,
        model: Any,
    ) -> None:
        delay_ms = binding.listener.delay_ms
        if delay_ms is None:
            delay_ms = self.default_debounce_ms

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; running debounced listener {binding.key} immediately")
            self._fire(binding, dict(values), dict(old_values), element, model)
            return

        previous = self._pending.pop(binding.key, None)
        if previous is not None:
            previous.handle.cancel()
            # Keep the values from before the burst as the old snapshot
            old_values = previous.old_values

        handle = loop.call_later(delay_ms / 1000, self._fire_pending, binding)
        self._pending[binding.key] = _PendingRun(
            handle=handle,
            values=dict(values),
            old_values=dict(old_values),
            element=element,
            model=model,
        )

    def _fire_pending(self, binding: _Binding) -> None:
        run = self._pending.pop(binding.key, None)
        if run is None:
            return
        self._fire(binding, run.values, run.old_values, run.element, run.model)

    def _fire(
        self,
        binding: _Binding,
        values: dict[str, Any],
        old_values: dict[str, Any],
        element: DiagramElement | None,
        model: Any,
    ) -> None:
        result = CascadeResult(updated_values=values)
        updates = self._run_listener(binding, values, old_values, element, model, result)

        before = dict(values)
        changed: list[str] = []
        for key, new_value in updates.items():
            if key in values and values[key] == new_value:
                continue
            values[key] = new_value
            changed.append(key)
            result.changed.append(key)
        if changed:
            self._cascade(changed, values, before, element, model, result)

        if self.on_debounced is not None:
            try:
                self.on_debounced(result)
            except Exception as e:
                logger.warning(f"Debounced result callback failed for {binding.key}: {e}")
