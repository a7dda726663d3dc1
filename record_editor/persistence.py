"""
Document persistence for the record editor.

The store is a key/value blob store with two keys, "schema" and "records".
FileDocumentStore keeps each document as a pretty-printed JSON file in a
data directory. The load/save helpers turn every store failure into a
default document or a failed save, never into an exception, and never
adopt part of a malformed document.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple
import logging

import yaml
from pydantic import TypeAdapter, ValidationError

from .exceptions import EditorError, MalformedDocument, PersistenceUnavailable, handle_editor_error
from .navigator import NavigatorState
from .record_engine import clean_all_records
from .schema_model import SchemaRoot, empty_schema, schema_from_document, schema_to_document
from .session import EditorSession, RecordsByPath

logger = logging.getLogger(__name__)

SCHEMA_KIND = "schema"
RECORDS_KIND = "records"
DOCUMENT_KINDS = (SCHEMA_KIND, RECORDS_KIND)

_RECORDS_ADAPTER = TypeAdapter(Dict[str, List[Dict[str, Any]]])


class DocumentStore(Protocol):
    """Whole-document store keyed by document kind ("schema" or "records")."""

    def exists(self, kind: str) -> bool: ...

    def load(self, kind: str) -> Any: ...

    def save(self, kind: str, document: Any) -> None: ...


class FileDocumentStore:
    """
    File-backed document store.

    Each kind is stored as `<data_dir>/<kind>.json`, indented with two spaces.
    Writes go to a temporary file in the same directory which then replaces
    the target, so a failed write never leaves a truncated document.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path_for(self, kind: str) -> Path:
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"Unknown document kind: {kind}")
        return self.data_dir / f"{kind}.json"

    def exists(self, kind: str) -> bool:
        return self.path_for(kind).exists()

    def load(self, kind: str) -> Any:
        """
        Read and parse one document.

        Raises:
            PersistenceUnavailable: If the file cannot be read
            MalformedDocument: If the file is not UTF-8 encoded JSON
        """
        path = self.path_for(kind)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise MalformedDocument(kind, f"not valid UTF-8 text ({e.reason})")
        except (IOError, OSError) as e:
            raise PersistenceUnavailable(kind, e, path)

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedDocument(kind, f"invalid JSON at line {e.lineno}: {e.msg}")

    def save(self, kind: str, document: Any) -> None:
        """
        Overwrite one document.

        Raises:
            PersistenceUnavailable: If the directory or file cannot be written
        """
        path = self.path_for(kind)
        tmp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{kind}.", suffix=".tmp", dir=self.data_dir)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write('\n')
            os.replace(tmp_name, path)
            tmp_name = None
            logger.info(f"Saved {kind} document to {path}")
        except (IOError, OSError, TypeError, ValueError) as e:
            raise PersistenceUnavailable(kind, e, path)
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


def parse_records_document(document: Any) -> RecordsByPath:
    """
    Validate a records document shape: node path key -> list of records.

    Raises:
        MalformedDocument: If the shape does not match
    """
    try:
        return _RECORDS_ADAPTER.validate_python(document)
    except ValidationError as e:
        raise MalformedDocument(RECORDS_KIND, f"{e.error_count()} shape error(s): {e.errors()[0]['msg']}")


def parse_schema_document(document: Any) -> SchemaRoot:
    """
    Validate a schema document.

    Raises:
        MalformedDocument: If the document is not a valid schema
    """
    try:
        return schema_from_document(document)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first['loc'])
        raise MalformedDocument(SCHEMA_KIND, f"{location}: {first['msg']}")
    except ValueError as e:
        raise MalformedDocument(SCHEMA_KIND, str(e))


def load_schema_file(path: Path) -> Optional[SchemaRoot]:
    """
    Load a schema from a YAML or JSON file, e.g. the bundled default schema.

    Returns:
        The schema, or None if the file is missing or invalid
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Schema file not found: {path}")
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() in ['.yaml', '.yml']:
                document = yaml.safe_load(f)
            elif path.suffix.lower() == '.json':
                document = json.load(f)
            else:
                logger.error(f"Unsupported schema file format: {path.suffix}")
                return None
        schema = parse_schema_document(document)
        logger.info(f"Successfully loaded schema file: {path}")
        return schema
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {path}: {e}")
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {path}: {e}")
    except UnicodeDecodeError as e:
        logger.error(f"Schema file {path} is not UTF-8 text: {e}")
    except MalformedDocument as e:
        logger.error(f"Invalid schema in {path}: {e}")
    except (IOError, OSError) as e:
        logger.error(f"Error reading schema file {path}: {e}")
    return None


def load_schema(store: DocumentStore, fallback_path: Optional[Path] = None) -> Tuple[SchemaRoot, List[str]]:
    """
    Load the stored schema, falling back to a default.

    Order: stored schema, then the fallback schema file, then an empty schema.

    Returns:
        Tuple of (schema, notices for the user)
    """
    notices: List[str] = []
    if store.exists(SCHEMA_KIND):
        try:
            schema = parse_schema_document(store.load(SCHEMA_KIND))
            logger.info(f"Loaded schema with {len(schema.classes)} top-level classes")
            return schema, notices
        except EditorError as e:
            handle_editor_error(e, "load schema")
            notices.append(f"Stored schema could not be loaded: {e}")
    else:
        logger.info("No stored schema yet")

    if fallback_path is not None:
        schema = load_schema_file(fallback_path)
        if schema is not None:
            notices.append(f"Using default schema from {fallback_path}")
            return schema, notices

    notices.append("Starting with an empty schema")
    return empty_schema(), notices


def load_records(store: DocumentStore) -> Tuple[RecordsByPath, List[str]]:
    """
    Load the stored records document, or start empty.

    Returns:
        Tuple of (records by node path key, notices for the user)
    """
    if not store.exists(RECORDS_KIND):
        logger.info("No stored records yet")
        return {}, []

    try:
        records = parse_records_document(store.load(RECORDS_KIND))
        logger.info(f"Loaded records for {len(records)} node paths")
        return records, []
    except EditorError as e:
        handle_editor_error(e, "load records")
        return {}, [f"Stored records could not be loaded: {e}"]


def save_schema(store: DocumentStore, session: EditorSession) -> Tuple[bool, List[EditorError]]:
    """
    Persist the session schema.

    Returns:
        Tuple of (success, errors raised by the store); the session is never changed
    """
    try:
        store.save(SCHEMA_KIND, schema_to_document(session.schema))
        return True, []
    except EditorError as e:
        handle_editor_error(e, "save schema")
        return False, [e]


def save_records(store: DocumentStore, session: EditorSession) -> Tuple[bool, List[EditorError]]:
    """
    Persist every record collection, cleaned against current visibility.

    Returns:
        Tuple of (success, errors raised by the store); the session is never changed
    """
    try:
        store.save(RECORDS_KIND, clean_all_records(session))
        return True, []
    except EditorError as e:
        handle_editor_error(e, "save records")
        return False, [e]


def open_session(store: DocumentStore, config: Dict[str, Any]) -> Tuple[EditorSession, List[str]]:
    """
    Build a new EditorSession from the store and the application config.

    Returns:
        Tuple of (session, notices collected while loading)
    """
    schema_config = config.get('schema', {})
    fallback = schema_config.get('fallback_schema')
    schemas_dir = Path(schema_config.get('schemas_dir', 'schemas'))
    fallback_path = schemas_dir / fallback if fallback else None

    schema, notices = load_schema(store, fallback_path)
    records, record_notices = load_records(store)
    notices.extend(record_notices)

    session = EditorSession(
        schema=schema,
        navigator=NavigatorState(),
        records_by_path=records,
        default_first_subclass=bool(config.get('editor', {}).get('default_first_subclass', False)),
    )
    return session, notices


def create_store(config: Dict[str, Any]) -> FileDocumentStore:
    """File store for the configured data directory."""
    data_dir = config.get('store', {}).get('data_dir', 'data')
    return FileDocumentStore(Path(data_dir))
