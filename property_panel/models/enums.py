"""
Enumeration types used across the property panel engine.
"""

from enum import Enum


class PropertyValueType(str, Enum):
    """Semantic type of a property value"""
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    TIME = "Time"
    DATETIME = "DateTime"
    ENUM = "Enum"
    ARRAY = "Array"
    OBJECT = "Object"
    EXPRESSION = "Expression"
    SCRIPT = "Script"
    COLOR = "Color"
    ICON = "Icon"
    FILE = "File"
    CUSTOM = "Custom"


class PropertyInputType(str, Enum):
    """Input widget used to render a property"""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    SWITCH = "switch"
    RADIO = "radio"
    SLIDER = "slider"
    COLOR = "color"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE = "file"
    TAGS = "tags"
    CODE = "code"
    EXPRESSION = "expression"
    TABLE = "table"
    CARD = "card"
    PANEL = "panel"
    CUSTOM = "custom"


class ConditionOperator(str, Enum):
    """Comparison operators for leaf conditions"""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    IN = "in"
    NOT_IN = "notIn"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    MATCHES = "matches"
    EXISTS = "exists"
    HAS_PROPERTY = "hasProperty"
    HAS_ATTRIBUTE = "hasAttribute"


class ConditionContext(str, Enum):
    """Where a leaf condition looks up its field"""
    VALUES = "values"
    BUSINESS_OBJECT = "businessObject"
    PARENT = "parent"
    ROOT = "root"
    ATTRS = "attrs"


class CompoundMode(str, Enum):
    """Boolean composition for compound conditions"""
    AND = "and"
    OR = "or"


class TriggerMode(str, Enum):
    """When a change listener runs"""
    IMMEDIATE = "immediate"
    DEBOUNCED = "debounced"


class HttpMethod(str, Enum):
    """HTTP methods supported by remote option sources"""
    GET = "GET"
    POST = "POST"


class ValidationFormat(str, Enum):
    """Built-in string formats for property validation"""
    EMAIL = "email"
    URL = "url"
    ALPHANUMERIC = "alphanumeric"
    NUMERIC = "numeric"


class EventDefinitionKind(str, Enum):
    """Logical event definition classification stored as eventDefinitions[0]"""
    NONE = "None"
    MESSAGE = "Message"
    TIMER = "Timer"
    CONDITIONAL = "Conditional"
    SIGNAL = "Signal"
    ERROR = "Error"
    ESCALATION = "Escalation"
    COMPENSATE = "Compensate"
    LINK = "Link"
    CANCEL = "Cancel"
    TERMINATE = "Terminate"
