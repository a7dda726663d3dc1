"""
Streamlit form generation for the record editor.

Renders one widget per field type (text, number, choice) and a nested row
editor for table fields, recursing for tables inside tables. Every widget
returns the stored value it now holds; callers compare and write changes
back through the record engine.
"""

import streamlit as st
from typing import Any, Dict, List, Optional, Sequence
import logging

from .exceptions import InvalidValue
from .field_renderer import FieldView, accept_value, choice_options, describe_field, describe_record
from .record_engine import add_row, remove_row, set_row_cell
from .schema_model import FieldDefinition, FieldKind
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class FormGenerator:
    """Generates Streamlit editors from field definitions."""

    @staticmethod
    def render_record_form(fields: Sequence[FieldDefinition], record: Dict[str, Any],
                           key_prefix: str) -> Dict[str, Any]:
        """
        Render every visible field of a record.

        Args:
            fields: Field definitions of the record's schema node
            record: Current record values
            key_prefix: Unique widget key prefix for this record

        Returns:
            Mapping of field key to new value for fields the user changed
        """
        changes: Dict[str, Any] = {}
        views = describe_record(fields, record)

        for definition, view in zip(fields, views):
            if not view.visible:
                continue
            new_value = FormGenerator.render_field(
                definition, record.get(definition.key), f"{key_prefix}:{definition.key}"
            )
            if new_value != record.get(definition.key):
                changes[definition.key] = new_value

        return changes

    @staticmethod
    def render_field(definition: FieldDefinition, value: Any, key: str,
                     label_visibility: str = "visible") -> Any:
        """
        Render one field and return its (possibly edited) stored value.

        Dispatches on the field type; table fields recurse into their columns.
        A widget value that cannot be coerced keeps the previous value.
        """
        view = describe_field(definition, value)

        if view.kind == FieldKind.TABLE:
            return FormGenerator._render_table(definition, view, key)

        if view.kind == FieldKind.NUMBER:
            widget_value = FormGenerator._render_number(view, key, label_visibility)
        elif view.kind == FieldKind.CHOICE:
            widget_value = FormGenerator._render_choice(definition, view, key, label_visibility)
        else:
            widget_value = st.text_input(
                view.label, value=view.value, key=key, label_visibility=label_visibility
            )

        try:
            return accept_value(definition, widget_value)
        except InvalidValue as e:
            st.warning(str(e))
            return value

    @staticmethod
    def _render_number(view: FieldView, key: str, label_visibility: str) -> Optional[float]:
        """Number input; an empty value renders as a blank input."""
        current = view.value
        if isinstance(current, float):
            return st.number_input(view.label, value=current, step=1.0, key=key,
                                   label_visibility=label_visibility)
        return st.number_input(view.label, value=current, step=1, key=key,
                               label_visibility=label_visibility)

    @staticmethod
    def _render_choice(definition: FieldDefinition, view: FieldView, key: str,
                       label_visibility: str) -> str:
        """Select box led by the placeholder; unknown stored values select the placeholder."""
        options = choice_options(definition)
        index = options.index(view.value) if view.value in options else 0
        return st.selectbox(view.label, options=options, index=index, key=key,
                            label_visibility=label_visibility)

    @staticmethod
    def _render_table(definition: FieldDefinition, view: FieldView, key: str) -> List[Dict[str, Any]]:
        """
        Render a table field as a list of rows with add/remove controls.

        Scalar columns share one line per row; nested table columns are
        rendered below their row. Cells of columns that do not apply to a
        row stay empty.
        """
        columns = definition.columns or []
        rows = [dict(row) for row in view.value]
        scalar_columns = [column for column in columns if column.type != FieldKind.TABLE]
        table_columns = [column for column in columns if column.type == FieldKind.TABLE]
        remove_index = None

        with st.container(border=True):
            st.markdown(f"**{view.label}**")

            if st.button("+ Add Row", key=f"{key}:add"):
                rows.append(add_row(definition))
                SessionManager.bump_form_version()

            if not rows:
                st.caption("No rows. Click “+ Add Row”.")
                return rows

            header = st.columns(len(scalar_columns) + 1)
            for col, column in zip(header, scalar_columns):
                col.markdown(f"*{column.display_label}*")
            header[-1].markdown("*Actions*")

            for row_index in range(len(rows)):
                cells = st.columns(len(scalar_columns) + 1)
                for col, column in zip(cells, scalar_columns):
                    with col:
                        FormGenerator._render_cell(definition, rows, row_index, column, key)

                with cells[-1]:
                    if st.button("Remove", key=f"{key}:{row_index}:remove"):
                        remove_index = row_index

                for column in table_columns:
                    FormGenerator._render_cell(definition, rows, row_index, column, key)

            if remove_index is not None and remove_row(rows, remove_index):
                SessionManager.bump_form_version()

        return rows

    @staticmethod
    def _render_cell(table: FieldDefinition, rows: List[Dict[str, Any]], row_index: int,
                     column: FieldDefinition, key: str) -> None:
        """Render one cell and write a changed value back into `rows`."""
        row = rows[row_index]
        cell_view = describe_field(column, row.get(column.key), row)
        if not cell_view.visible:
            if column.type != FieldKind.TABLE:
                st.caption("—")
            return

        cell_key = f"{key}:{row_index}:{column.key}"
        label_visibility = "visible" if column.type == FieldKind.TABLE else "collapsed"
        new_value = FormGenerator.render_field(column, row.get(column.key), cell_key, label_visibility)
        if new_value != row.get(column.key):
            set_row_cell(table, rows, row_index, column.key, new_value)
