"""
Conditional visibility for fields and table columns.

A field is present in a row unless its `hideIf` condition matches or its
`showIf` condition does not. Cleaning a row drops every key whose field is
not currently visible; cleaning is idempotent.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

from .schema_model import FieldDefinition, FieldKind

logger = logging.getLogger(__name__)


def is_visible(field: FieldDefinition, row: Dict[str, Any]) -> bool:
    """
    Decide whether a field applies to a row (or record).

    Args:
        field: Field or column definition
        row: Sibling values the conditions are evaluated against

    Returns:
        False if `hideIf` matches or `showIf` does not match, True otherwise
    """
    visible = True
    if field.hide_if is not None and field.hide_if.matches(row):
        visible = False
    if field.show_if is not None and not field.show_if.matches(row):
        visible = False
    return visible


def visible_fields(fields: Optional[Sequence[FieldDefinition]], row: Dict[str, Any]) -> List[FieldDefinition]:
    """Fields of `fields` that apply to `row`, in declaration order."""
    return [field for field in fields or [] if is_visible(field, row)]


def clean_row(row: Dict[str, Any], columns: Optional[Sequence[FieldDefinition]]) -> Dict[str, Any]:
    """
    Return a copy of `row` without the keys of columns that are not visible.

    Conditions are checked against the row being cleaned. A removal can
    change the outcome for a column declared earlier, so passes repeat until
    nothing else is dropped; the result is a fixed point and cleaning it
    again is a no-op.
    """
    cleaned = dict(row)
    columns = list(columns or [])
    removed = True
    while removed:
        removed = False
        for column in columns:
            if column.key in cleaned and not is_visible(column, cleaned):
                del cleaned[column.key]
                removed = True
    return cleaned


def clean_record(record: Dict[str, Any], fields: Optional[Sequence[FieldDefinition]]) -> Dict[str, Any]:
    """
    Recursively clean a record and every row of its (nested) table fields.

    Used before persisting so stored documents never carry values for fields
    that do not apply.
    """
    cleaned = clean_row(record, fields)
    for field in fields or []:
        if field.type != FieldKind.TABLE or field.key not in cleaned:
            continue
        rows = cleaned[field.key]
        if isinstance(rows, list):
            cleaned[field.key] = [
                clean_record(row, field.columns) if isinstance(row, dict) else row
                for row in rows
            ]
    return cleaned
