from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import record_editor.edit_view as edit_view
from record_editor.error_handler import ErrorType
from record_editor.exceptions import PersistenceUnavailable
from record_editor.navigator import NavigatorState
from record_editor.schema_model import schema_from_document
from record_editor.session import EditorSession


class _DummyContext:
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _mock_st(button_keys=()):
    def _columns(spec, **_kwargs):
        if isinstance(spec, int):
            count = spec
        else:
            count = len(spec)
        return tuple(_DummyContext() for _ in range(count))

    def _selectbox(label, options, index=0, **_kwargs):
        return options[index]

    def _button(label, key=None, **_kwargs):
        return key in button_keys

    return SimpleNamespace(
        header=MagicMock(),
        divider=MagicMock(),
        subheader=MagicMock(),
        caption=MagicMock(),
        info=MagicMock(),
        columns=MagicMock(side_effect=_columns),
        selectbox=MagicMock(side_effect=_selectbox),
        button=MagicMock(side_effect=_button),
        warning=MagicMock(),
        success=MagicMock(),
        markdown=MagicMock(),
        text=MagicMock(),
        rerun=MagicMock(),
        expander=MagicMock(return_value=_DummyContext()),
        error=MagicMock(),
    )


def _session():
    return EditorSession(schema=schema_from_document({
        "classes": [{
            "id": "tv",
            "label": "TV",
            "hasRecords": False,
            "subClasses": [{"id": "maker", "fields": [{"key": "name", "type": "text"}]}]
        }]
    }))


def test_render_with_empty_schema_shows_hint(monkeypatch):
    """Test the hint shown when the schema has no classes."""
    st = _mock_st()
    monkeypatch.setattr(edit_view, "st", st)

    with patch.object(edit_view.SessionManager, "get_session", return_value=EditorSession()), \
            patch.object(edit_view.EditView, "_render_class_selector") as mock_selector:
        edit_view.EditView.render()

    st.info.assert_called_once()
    mock_selector.assert_not_called()


def test_render_stops_when_nothing_selected(monkeypatch):
    """Test that no form renders before a class is chosen."""
    st = _mock_st()
    monkeypatch.setattr(edit_view, "st", st)

    with patch.object(edit_view.SessionManager, "get_session", return_value=_session()), \
            patch.object(edit_view.SessionManager, "get_form_version", return_value=0), \
            patch.object(edit_view.EditView, "_render_active_node") as mock_active:
        edit_view.EditView.render()

    st.selectbox.assert_called_once()
    mock_active.assert_not_called()


def test_grouping_node_shows_note(monkeypatch):
    """Test that a grouping node offers no records."""
    st = _mock_st()
    monkeypatch.setattr(edit_view, "st", st)
    session = _session()
    session.select_class("tv")

    with patch.object(edit_view.SessionManager, "get_session", return_value=session):
        edit_view.EditView._render_active_node(session.active_node())

    st.info.assert_called_once()
    assert "groups sub-classes" in st.info.call_args[0][0]


def test_new_record_appends_and_selects(monkeypatch):
    """Test that "+ New Record" appends and selects the record."""
    st = _mock_st(button_keys={"new_record_btn"})
    monkeypatch.setattr(edit_view, "st", st)
    session = _session()
    session.navigator = NavigatorState("tv", ["maker"])
    records = []
    session.records_by_path["tv/maker"] = records

    with patch.object(edit_view.SessionManager, "get_session", return_value=session), \
            patch.object(edit_view.SessionManager, "get_selected_record_index", return_value=None), \
            patch.object(edit_view.SessionManager, "get_form_version", return_value=0), \
            patch.object(edit_view.SessionManager, "set_selected_record_index") as mock_select:
        edit_view.EditView._render_record_picker(session.active_node(), records)

    assert records == [{"name": ""}]
    mock_select.assert_called_once_with(0)
    st.rerun.assert_called()


def test_save_success_marks_saved(monkeypatch):
    """Test a successful save of the records document."""
    st = _mock_st(button_keys={"save_records_btn"})
    monkeypatch.setattr(edit_view, "st", st)
    session = _session()
    session.records_by_path["tv/maker"] = [{"name": "Acme"}]

    with patch.object(edit_view.SessionManager, "get_session", return_value=session), \
            patch.object(edit_view.SessionManager, "get_saved_records_document", return_value={}), \
            patch.object(edit_view.SessionManager, "get_store", return_value=MagicMock()), \
            patch.object(edit_view.SessionManager, "mark_records_saved") as mock_mark, \
            patch.object(edit_view, "save_records", return_value=(True, [])) as mock_save, \
            patch.object(edit_view.Notify, "queue") as mock_queue:
        edit_view.EditView._render_save_section()

    st.warning.assert_called_once()
    mock_save.assert_called_once()
    mock_mark.assert_called_once()
    mock_queue.assert_called_once_with("Records saved", "success")


def test_save_failure_keeps_session(monkeypatch):
    """Test that a failed save reports the error and keeps the session."""
    st = _mock_st(button_keys={"save_records_btn"})
    monkeypatch.setattr(edit_view, "st", st)
    session = _session()
    session.records_by_path["tv/maker"] = [{"name": "Acme"}]
    error = PersistenceUnavailable("records", OSError("disk full"))

    with patch.object(edit_view.SessionManager, "get_session", return_value=session), \
            patch.object(edit_view.SessionManager, "get_saved_records_document", return_value={}), \
            patch.object(edit_view.SessionManager, "get_store", return_value=MagicMock()), \
            patch.object(edit_view.SessionManager, "mark_records_saved") as mock_mark, \
            patch.object(edit_view, "save_records", return_value=(False, [error])), \
            patch.object(edit_view.ErrorHandler, "handle_error") as mock_handle:
        edit_view.EditView._render_save_section()

    mock_mark.assert_not_called()
    mock_handle.assert_called_once_with(error, "save records", ErrorType.PERSISTENCE, show_details=True)
    assert session.records_by_path == {"tv/maker": [{"name": "Acme"}]}


def test_sidebar_lists_record_counts(monkeypatch):
    """Test the record counts listed in the sidebar."""
    st = _mock_st()
    monkeypatch.setattr(edit_view, "st", st)
    session = _session()
    session.records_by_path["tv/maker"] = [{"name": "a"}, {"name": "b"}]

    with patch.object(edit_view.SessionManager, "get_session", return_value=session):
        edit_view.EditView.render_edit_sidebar()

    lines = [call.args[0] for call in st.text.call_args_list]
    assert lines == ["TV", "  maker: 2"]
