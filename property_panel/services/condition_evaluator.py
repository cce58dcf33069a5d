"""
Condition Evaluator

Evaluates visibility/enablement predicates against the selected element and
the current value snapshot.

Evaluation never raises. A comparison between mismatched types is simply
false, and any error while evaluating (bad regex, failing function predicate,
malformed declarative condition) is logged and treated as false, so a
misconfigured panel hides a field instead of breaking the editor.
"""

import logging
import re
from collections import ChainMap
from collections.abc import Mapping
from typing import Any, Callable

from pydantic import TypeAdapter

from property_panel.models.contracts.conditions import (
    CompoundCondition,
    ConditionInput,
    FunctionCondition,
    LeafCondition,
)
from property_panel.models.element import DiagramElement
from property_panel.models.enums import CompoundMode, ConditionContext, ConditionOperator

logger = logging.getLogger(__name__)

_condition_adapter = TypeAdapter(ConditionInput)


class _Missing:
    """Marker for a field that is not present at all (as opposed to None)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def get_path(data: Any, path: str) -> Any:
    """
    Read a dot-separated path from nested mappings/objects.

    Returns MISSING when any segment is absent.
    """
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        elif current is not None and not isinstance(current, _Missing) and hasattr(current, part):
            current = getattr(current, part)
        else:
            return MISSING
    return current


def lookup_field(values: Mapping[str, Any], field: str) -> Any:
    """Value of a field in a snapshot; flat dot-named keys win over nested paths."""
    if isinstance(values, Mapping) and field in values:
        return values[field]
    return get_path(values, field)


def element_scope(element: DiagramElement | None) -> Mapping[str, Any]:
    """Business data of an element, with its id and type as fallbacks."""
    if element is None:
        return {}
    return ChainMap(element.business_object, {"id": element.id, "type": element.type})


def _scope_for(
    context: ConditionContext,
    element: DiagramElement | None,
    values: Mapping[str, Any],
) -> Mapping[str, Any]:
    if context == ConditionContext.VALUES:
        return values
    if element is None:
        return {}
    if context == ConditionContext.BUSINESS_OBJECT:
        return element_scope(element)
    if context == ConditionContext.PARENT:
        return element_scope(element.parent)
    if context == ConditionContext.ROOT:
        return element_scope(element.root)
    return element.attrs


# ==================== OPERATORS ====================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, _Missing):
        left = None
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right) and not (isinstance(left, str) and isinstance(right, str)):
        return False
    return left == right


def _is_empty(value: Any) -> bool:
    if value is None or isinstance(value, _Missing):
        return True
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) == 0
    return False


def _contains(container: Any, item: Any) -> bool | None:
    """True/False when the container type supports membership, None otherwise."""
    if isinstance(container, str):
        return isinstance(item, str) and item in container
    if isinstance(container, (list, tuple, set)):
        return any(_strict_equals(member, item) for member in container)
    if isinstance(container, Mapping):
        return item in container
    return None


def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    if _is_number(left) and _is_number(right):
        return op(left, right)
    return False


def _matches(left: Any, pattern: Any) -> bool:
    if not isinstance(left, str) or not isinstance(pattern, str):
        return False
    try:
        return re.search(pattern, left) is not None
    except re.error as e:
        logger.warning(f"Invalid pattern '{pattern}' in condition: {e}")
        return False


def _apply_operator(
    condition: LeafCondition,
    actual: Any,
    element: DiagramElement | None,
) -> bool:
    expected = condition.value
    operator = condition.operator

    if operator == ConditionOperator.EQUALS:
        return _strict_equals(actual, expected)
    if operator == ConditionOperator.NOT_EQUALS:
        return not _strict_equals(actual, expected)
    if operator == ConditionOperator.CONTAINS:
        return bool(_contains(actual, expected))
    if operator == ConditionOperator.NOT_CONTAINS:
        if actual is None or isinstance(actual, _Missing):
            return True
        result = _contains(actual, expected)
        return result is not None and not result
    if operator == ConditionOperator.STARTS_WITH:
        return isinstance(actual, str) and isinstance(expected, str) and actual.startswith(expected)
    if operator == ConditionOperator.ENDS_WITH:
        return isinstance(actual, str) and isinstance(expected, str) and actual.endswith(expected)
    if operator == ConditionOperator.GREATER_THAN:
        return _compare(actual, expected, lambda a, b: a > b)
    if operator == ConditionOperator.GREATER_THAN_OR_EQUAL:
        return _compare(actual, expected, lambda a, b: a >= b)
    if operator == ConditionOperator.LESS_THAN:
        return _compare(actual, expected, lambda a, b: a < b)
    if operator == ConditionOperator.LESS_THAN_OR_EQUAL:
        return _compare(actual, expected, lambda a, b: a <= b)
    if operator == ConditionOperator.IN:
        return isinstance(expected, (list, tuple, set)) and bool(_contains(expected, actual))
    if operator == ConditionOperator.NOT_IN:
        return isinstance(expected, (list, tuple, set)) and not _contains(expected, actual)
    if operator == ConditionOperator.IS_EMPTY:
        return _is_empty(actual)
    if operator == ConditionOperator.IS_NOT_EMPTY:
        return not _is_empty(actual)
    if operator == ConditionOperator.MATCHES:
        return _matches(actual, expected)
    if operator == ConditionOperator.EXISTS:
        return actual is not None and not isinstance(actual, _Missing)
    if operator == ConditionOperator.HAS_PROPERTY:
        return isinstance(actual, Mapping) and expected in actual
    if operator == ConditionOperator.HAS_ATTRIBUTE:
        attribute = expected if expected is not None else condition.field
        return element is not None and attribute in element.attrs

    logger.warning(f"Unsupported condition operator: {operator}")
    return False


# ==================== EVALUATION ====================


def _evaluate(
    condition: Any,
    element: DiagramElement | None,
    values: Mapping[str, Any],
    model: Any,
) -> bool:
    if condition is None:
        return True

    if not isinstance(condition, (LeafCondition, CompoundCondition, FunctionCondition)):
        condition = _condition_adapter.validate_python(condition)

    if isinstance(condition, LeafCondition):
        scope = _scope_for(condition.context, element, values)
        if condition.context == ConditionContext.VALUES:
            actual = lookup_field(scope, condition.field)
        else:
            actual = get_path(scope, condition.field)
        return _apply_operator(condition, actual, element)

    if isinstance(condition, CompoundCondition):
        children = (_evaluate(child, element, values, model) for child in condition.conditions)
        if condition.mode == CompoundMode.AND:
            return all(children)
        return any(children)

    return bool(condition.evaluate(element, values, model))


def evaluate_condition(
    condition: Any,
    element: DiagramElement | None,
    values: Mapping[str, Any],
    model: Any = None,
) -> bool:
    """
    Evaluate a condition for the selected element.

    Args:
        condition: Condition model (or its declarative dict/string form); None means always
        element: Currently selected diagram element
        values: Current value snapshot (property name -> value)
        model: External model handle passed through to function conditions

    Returns:
        Whether the condition holds. Errors evaluate to False.
    """
    try:
        return _evaluate(condition, element, values, model)
    except Exception as e:
        logger.warning(f"Condition evaluation failed, treating as false: {e}")
        return False
