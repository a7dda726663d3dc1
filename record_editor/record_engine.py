"""
Record engine for the record editor.

Creates, reads, updates and deletes records against a schema node. Owns
default values, prepopulated table rows and type coercion; re-applies
visibility cleanup after every write so rows never hold values for columns
that do not apply.

All public operations recover locally: stale indexes, unknown paths and
values that cannot be coerced turn into a logged no-op.
"""

import math
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence
import logging

from .exceptions import IndexOutOfRange, InvalidValue, SchemaResolutionMiss, handle_editor_error
from .schema_model import (
    ClassDefinition,
    FieldDefinition,
    FieldKind,
    find_field,
    node_path_key,
    resolve_node,
    split_node_path,
)
from .session import EditorSession, Record, RecordsByPath
from .visibility import clean_record, clean_row, is_visible

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def empty_value(field: FieldDefinition) -> Any:
    """Empty value of a field: an empty row list for tables, "" otherwise."""
    if field.type == FieldKind.TABLE:
        return []
    return ""


def initial_value(field: FieldDefinition) -> Any:
    """Value a freshly created record gets for `field`."""
    if field.type == FieldKind.TABLE:
        return prepopulate_rows(field)
    if field.default_value is not None:
        return deepcopy(field.default_value)
    return ""


def prepopulate_rows(table_field: FieldDefinition) -> List[Row]:
    """
    Seed rows for a table field with `prepopulateFrom`.

    One row per option of the named column; every other column starts
    empty and each row is cleaned. A missing column or one without options
    yields no rows.
    """
    if not table_field.prepopulate_from:
        return []

    columns = table_field.columns or []
    source = find_field(columns, table_field.prepopulate_from)
    if source is None or not source.options:
        logger.debug(
            f"Table '{table_field.key}' prepopulates from '{table_field.prepopulate_from}' "
            f"which has no options"
        )
        return []

    rows = []
    for option in source.options:
        row = {column.key: empty_value(column) for column in columns}
        row[source.key] = option
        rows.append(clean_row(row, columns))
    return rows


def create_record(node: ClassDefinition) -> Record:
    """
    Build a new record for a schema node.

    Non-table fields get their default value or ""; table fields get an
    empty row list, or prepopulated rows when `prepopulateFrom` names a
    column with options. The record is not added to any collection.
    """
    fields = node.field_list
    record = {field.key: initial_value(field) for field in fields}
    return clean_row(record, fields)


def add_row(table_field: FieldDefinition) -> Row:
    """New all-empty row for a table field, cleaned against its columns."""
    columns = table_field.columns or []
    row = {column.key: empty_value(column) for column in columns}
    return clean_row(row, columns)


def remove_row(rows: List[Row], row_index: int) -> bool:
    """Remove one row; later rows shift down. Out-of-range is a no-op."""
    if not 0 <= row_index < len(rows):
        handle_editor_error(IndexOutOfRange(row_index, len(rows), "row"), "remove row")
        return False
    del rows[row_index]
    return True


def coerce_value(field: FieldDefinition, value: Any) -> Any:
    """
    Coerce a value to the closed value type of its field.

    Raises:
        InvalidValue: If the value cannot represent the field type
    """
    if field.type == FieldKind.TEXT:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            raise InvalidValue(field.key, field.type.value, value)
        return str(value)

    if field.type == FieldKind.NUMBER:
        if value is None or value == "":
            return ""
        if isinstance(value, bool):
            raise InvalidValue(field.key, field.type.value, value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise InvalidValue(field.key, field.type.value, value)
            return value
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return ""
            try:
                return int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                raise InvalidValue(field.key, field.type.value, value)
            if not math.isfinite(number):
                raise InvalidValue(field.key, field.type.value, value)
            return number
        raise InvalidValue(field.key, field.type.value, value)

    if field.type == FieldKind.CHOICE:
        if value is None or value == "":
            return ""
        if isinstance(value, (dict, list)):
            raise InvalidValue(field.key, field.type.value, value)
        text = str(value)
        if text not in (field.options or []):
            raise InvalidValue(field.key, field.type.value, value,
                               f"'{text}' is not an option of '{field.key}'")
        return text

    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidValue(field.key, field.type.value, value)
    return [coerce_row(field.columns, row, field.key) for row in value]


def coerce_row(columns: Optional[Sequence[FieldDefinition]], row: Any, owner: str = "row") -> Row:
    """
    Coerce every known cell of a row and clean it; unknown keys are dropped.

    Raises:
        InvalidValue: If the row is not a mapping or a cell cannot be coerced
    """
    if not isinstance(row, dict):
        raise InvalidValue(owner, FieldKind.TABLE.value, row, f"Rows of '{owner}' must be objects")
    coerced = {}
    for column in columns or []:
        if column.key in row:
            coerced[column.key] = coerce_value(column, row[column.key])
    return clean_row(coerced, columns)


def coerce_record(node: ClassDefinition, record: Any) -> Record:
    """Coerce a whole record against its node fields."""
    return coerce_row(node.field_list, record, node.id)


def set_row_cell(table_field: FieldDefinition, rows: List[Row], row_index: int,
                 column_key: str, value: Any) -> bool:
    """
    Replace one cell of a table and re-clean that row only.

    Returns:
        True if the cell was written
    """
    if not 0 <= row_index < len(rows):
        handle_editor_error(IndexOutOfRange(row_index, len(rows), "row"), "update row cell")
        return False

    column = find_field(table_field.columns, column_key)
    if column is None:
        logger.warning(f"Unknown column '{column_key}' in table '{table_field.key}'")
        return False

    try:
        coerced = coerce_value(column, value)
    except InvalidValue as e:
        handle_editor_error(e, "update row cell")
        return False

    row = dict(rows[row_index])
    row[column_key] = coerced
    rows[row_index] = clean_row(row, table_field.columns)
    return True


def _node_for_path(session: EditorSession, path: Sequence[str]) -> Optional[ClassDefinition]:
    node = resolve_node(session.schema, path)
    if node is None:
        missing = path[-1] if path else ""
        handle_editor_error(SchemaResolutionMiss(missing), f"resolve node {node_path_key(path)}")
    return node


def get_records(session: EditorSession, path: Sequence[str]) -> Optional[List[Record]]:
    """
    Record collection of a node path, created empty on first access.

    Returns:
        The collection, or None for unknown paths and grouping nodes
    """
    node = _node_for_path(session, path)
    if node is None or not node.records_enabled:
        return None
    return session.records_by_path.setdefault(node_path_key(path), [])


def get_active_records(session: EditorSession) -> Optional[List[Record]]:
    """Record collection of the node the navigator currently resolves to."""
    resolved = session.active_node()
    if resolved is None or not resolved.has_records:
        return None
    return get_records(session, resolved.path)


def append_record(session: EditorSession, path: Sequence[str], record: Record) -> bool:
    """Append a record at the end of a node's collection."""
    records = get_records(session, path)
    if records is None:
        return False
    node = resolve_node(session.schema, path)
    try:
        records.append(coerce_record(node, record))
    except InvalidValue as e:
        handle_editor_error(e, "append record")
        return False
    logger.info(f"Appended record {len(records) - 1} to {node_path_key(path)}")
    return True


def update_field(session: EditorSession, path: Sequence[str], record_index: int,
                 field_key: str, value: Any) -> bool:
    """
    Replace one field value of a record in place.

    Out-of-range indexes, unknown fields and values that cannot be coerced
    leave the collection untouched.

    Returns:
        True if the value was written
    """
    records = get_records(session, path)
    if records is None:
        return False
    if not 0 <= record_index < len(records):
        handle_editor_error(IndexOutOfRange(record_index, len(records)), "update field")
        return False

    node = resolve_node(session.schema, path)
    field = find_field(node.field_list, field_key)
    if field is None:
        logger.warning(f"Unknown field '{field_key}' in {node_path_key(path)}")
        return False

    try:
        coerced = coerce_value(field, value)
    except InvalidValue as e:
        handle_editor_error(e, "update field")
        return False

    record = dict(records[record_index])
    record[field_key] = coerced
    records[record_index] = clean_row(record, node.field_list)
    return True


def remove_record(session: EditorSession, path: Sequence[str], record_index: int) -> bool:
    """Remove a record; later indexes shift down by one."""
    records = get_records(session, path)
    if records is None:
        return False
    if not 0 <= record_index < len(records):
        handle_editor_error(IndexOutOfRange(record_index, len(records)), "remove record")
        return False
    del records[record_index]
    logger.info(f"Removed record {record_index} from {node_path_key(path)}")
    return True


def update_row_cell(fields: Sequence[FieldDefinition], record: Record, field_key: str,
                    row_index: int, column_key: str, value: Any) -> bool:
    """
    Replace one cell in a table field of `record` and re-clean that row.

    Args:
        fields: Field definitions owning `record` (node fields or table columns)
        record: Record or row holding the table
        field_key: Key of the table field
        row_index: Row to update
        column_key: Column to update
        value: New cell value

    Returns:
        True if the cell was written
    """
    table_field = find_field(fields, field_key)
    if table_field is None or table_field.type != FieldKind.TABLE:
        logger.warning(f"'{field_key}' is not a table field")
        return False

    if not is_visible(table_field, record):
        logger.warning(f"Table '{field_key}' does not apply to this record")
        return False

    rows = record.get(field_key)
    if not isinstance(rows, list):
        rows = []
    if not set_row_cell(table_field, rows, row_index, column_key, value):
        return False
    record[field_key] = rows
    return True


def record_label(node: ClassDefinition, record: Record, index: int) -> str:
    """Human label for a record: its name, id, first text value, or position."""
    for key in ('name', 'id'):
        value = record.get(key)
        if value not in (None, ""):
            return str(value)
    for field in node.field_list:
        if field.type == FieldKind.TEXT and record.get(field.key) not in (None, ""):
            return str(record[field.key])
    return f"Record {index + 1}"


def clean_all_records(session: EditorSession) -> RecordsByPath:
    """
    Records document ready for persisting.

    Every record of a node that still exists is cleaned recursively;
    collections for paths the schema no longer has are kept as they are.
    """
    document: RecordsByPath = {}
    for key, records in session.records_by_path.items():
        node = resolve_node(session.schema, split_node_path(key))
        if node is None:
            document[key] = deepcopy(records)
            continue
        document[key] = [clean_record(record, node.field_list) for record in records]
    return document


def count_records(session: EditorSession) -> Dict[str, int]:
    """Number of records per node path key."""
    return {key: len(records) for key, records in session.records_by_path.items()}
