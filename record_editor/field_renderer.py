"""
Presentation-agnostic field rendering contract.

Maps a field definition plus its current value to a FieldView describing
what an editor must show (widget kind, label, display value, options,
and for tables the nested cell views of every row), and maps an edited
widget value back to a stored value. Any front end renders FieldViews;
the Streamlit front end lives in form_generator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import InvalidValue
from .record_engine import coerce_value
from .schema_model import FieldDefinition, FieldKind
from .visibility import is_visible

CHOICE_PLACEHOLDER = "--Select--"


@dataclass
class FieldView:
    """
    Editable representation of one field or table cell.

    Attributes:
        key: Field or column key
        label: Display label
        kind: Field type tag
        value: Value prepared for display (None for an empty number)
        visible: Whether the field applies to its row
        options: Choices for a choice field, in declaration order
        columns: Column views used as table headers
        rows: Cell views per row for a table field
    """
    key: str
    label: str
    kind: FieldKind
    value: Any = None
    visible: bool = True
    options: List[str] = field(default_factory=list)
    columns: List["FieldView"] = field(default_factory=list)
    rows: List[List["FieldView"]] = field(default_factory=list)

    @property
    def is_empty_table(self) -> bool:
        return self.kind == FieldKind.TABLE and not self.rows


def display_value(definition: FieldDefinition, value: Any) -> Any:
    """Stored value converted to what a widget of the field type shows."""
    if definition.type == FieldKind.NUMBER:
        if value in (None, "") or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        try:
            coerced = coerce_value(definition, value)
        except InvalidValue:
            return None
        return None if coerced == "" else coerced
    if definition.type == FieldKind.TABLE:
        return value if isinstance(value, list) else []
    if value is None:
        return ""
    return str(value)


def describe_field(definition: FieldDefinition, value: Any,
                   row: Optional[Dict[str, Any]] = None) -> FieldView:
    """
    Describe one field for editing, recursing into table columns.

    Args:
        definition: Field or column definition
        value: Current stored value
        row: Sibling values used to evaluate visibility (None means visible)
    """
    view = FieldView(
        key=definition.key,
        label=definition.display_label,
        kind=definition.type,
        value=display_value(definition, value),
        visible=True if row is None else is_visible(definition, row),
        options=list(definition.options or []),
    )

    if definition.type == FieldKind.TABLE:
        columns = definition.columns or []
        view.columns = [
            FieldView(key=column.key, label=column.display_label, kind=column.type)
            for column in columns
        ]
        view.rows = [
            describe_row(columns, row_value if isinstance(row_value, dict) else {})
            for row_value in view.value
        ]
    return view


def describe_row(columns: Sequence[FieldDefinition], row: Dict[str, Any]) -> List[FieldView]:
    """Cell views for one row; cells of hidden columns are marked not visible."""
    return [describe_field(column, row.get(column.key), row) for column in columns]


def describe_record(fields: Sequence[FieldDefinition], record: Dict[str, Any]) -> List[FieldView]:
    """Field views for a whole record, in declaration order."""
    return describe_row(fields, record)


def accept_value(definition: FieldDefinition, widget_value: Any) -> Any:
    """
    Convert an edited widget value back to the stored value.

    The choice placeholder and an empty number map back to "". Tables pass
    their row list through coercion unchanged in shape.

    Raises:
        InvalidValue: If the widget value cannot represent the field type
    """
    if definition.type == FieldKind.CHOICE and widget_value == CHOICE_PLACEHOLDER:
        return ""
    if definition.type == FieldKind.NUMBER and isinstance(widget_value, float) and widget_value.is_integer():
        widget_value = int(widget_value)
    return coerce_value(definition, widget_value)


def choice_options(definition: FieldDefinition) -> List[str]:
    """Options for a choice widget, led by the empty placeholder."""
    return [CHOICE_PLACEHOLDER] + list(definition.options or [])
