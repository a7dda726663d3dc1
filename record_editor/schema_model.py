"""
Schema model for the record editor.

Defines the typed, pydantic-validated shape of a schema document: fields
(text, number, choice and nested table fields), classes with sub-class
trees, and the lookups used to resolve classes and node paths.
"""

import math
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import logging

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Separator used when a node path is flattened into a records document key
NODE_PATH_SEPARATOR = "/"

# A node path is the top-level class id followed by the chosen sub-class ids
NodePath = Tuple[str, ...]

# Legacy field type spellings accepted on load
_LEGACY_FIELD_TYPES = {
    'dropdown': 'choice',
    'select': 'choice',
    'string': 'text',
}


class FieldKind(str, Enum):
    """Closed set of field types a schema may declare."""
    TEXT = "text"
    NUMBER = "number"
    CHOICE = "choice"
    TABLE = "table"


class _SchemaBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VisibilityCondition(_SchemaBase):
    """A `hideIf` / `showIf` rule comparing one sibling value."""

    reference_field_key: str = Field(
        validation_alias=AliasChoices("referenceFieldKey", "field", "reference_field_key"),
        serialization_alias="referenceFieldKey",
    )
    required_value: Any = Field(
        default=None,
        validation_alias=AliasChoices("requiredValue", "equals", "required_value"),
        serialization_alias="requiredValue",
    )

    def matches(self, row: Dict[str, Any]) -> bool:
        """True when the referenced sibling holds exactly the required value."""
        return row.get(self.reference_field_key) == self.required_value


class FieldDefinition(_SchemaBase):
    """One editable field, or one column when nested inside a table field."""

    key: str
    label: str = ""
    type: FieldKind = FieldKind.TEXT
    default_value: Any = Field(
        default=None,
        validation_alias=AliasChoices("defaultValue", "default_value"),
        serialization_alias="defaultValue",
    )
    options: Optional[List[str]] = None
    columns: Optional[List["FieldDefinition"]] = None
    hide_if: Optional[VisibilityCondition] = Field(
        default=None,
        validation_alias=AliasChoices("hideIf", "hide_if"),
        serialization_alias="hideIf",
    )
    show_if: Optional[VisibilityCondition] = Field(
        default=None,
        validation_alias=AliasChoices("showIf", "show_if"),
        serialization_alias="showIf",
    )
    prepopulate_from: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("prepopulateFrom", "prepopulate_from"),
        serialization_alias="prepopulateFrom",
    )

    @field_validator('type', mode='before')
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_FIELD_TYPES.get(value.lower(), value.lower())
        return value

    @field_validator('key')
    @classmethod
    def _key_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("field key must not be empty")
        return value

    @model_validator(mode='after')
    def _check_type_requirements(self) -> "FieldDefinition":
        if self.type == FieldKind.CHOICE and not self.options:
            raise ValueError(f"choice field '{self.key}' must declare non-empty 'options'")
        if self.type == FieldKind.TABLE:
            if self.columns is None:
                raise ValueError(f"table field '{self.key}' must declare 'columns'")
            _ensure_unique_keys(self.columns, f"table '{self.key}'")
        if self.default_value is not None:
            _check_default_value(self)
        return self

    @property
    def display_label(self) -> str:
        return self.label or self.key

    @property
    def is_table(self) -> bool:
        return self.type == FieldKind.TABLE


class ClassDefinition(_SchemaBase):
    """A schema node: its own fields plus an ordered list of sub-classes."""

    id: str
    label: str = ""
    fields: Optional[List[FieldDefinition]] = None
    has_records: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("hasRecords", "has_records"),
        serialization_alias="hasRecords",
    )
    sub_classes: Optional[List["ClassDefinition"]] = Field(
        default=None,
        validation_alias=AliasChoices("subClasses", "sub_classes"),
        serialization_alias="subClasses",
    )

    @field_validator('id')
    @classmethod
    def _valid_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("class id must not be empty")
        if NODE_PATH_SEPARATOR in value:
            raise ValueError(f"class id '{value}' must not contain '{NODE_PATH_SEPARATOR}'")
        return value

    @model_validator(mode='after')
    def _check_unique_children(self) -> "ClassDefinition":
        if self.fields:
            _ensure_unique_keys(self.fields, f"class '{self.id}'")
        if self.sub_classes:
            _ensure_unique_ids(self.sub_classes, f"sub-classes of '{self.id}'")
        return self

    @property
    def display_label(self) -> str:
        return self.label or self.id

    @property
    def records_enabled(self) -> bool:
        """Grouping nodes (`hasRecords: false`) own no record collection."""
        return self.has_records is not False

    @property
    def field_list(self) -> List[FieldDefinition]:
        return list(self.fields or [])

    @property
    def children(self) -> List["ClassDefinition"]:
        return list(self.sub_classes or [])


class SchemaRoot(_SchemaBase):
    """The whole schema document: an ordered list of top-level classes."""

    classes: List[ClassDefinition] = Field(default_factory=list)

    @model_validator(mode='after')
    def _check_unique_classes(self) -> "SchemaRoot":
        _ensure_unique_ids(self.classes, "top-level classes")
        return self


def _check_default_value(field: FieldDefinition) -> None:
    default = field.default_value
    if field.type == FieldKind.TABLE:
        return
    if isinstance(default, (dict, list)):
        raise ValueError(f"default of '{field.key}' must be a single value")
    if field.type == FieldKind.CHOICE and default != "" and str(default) not in field.options:
        raise ValueError(f"default '{default}' of '{field.key}' is not one of its options")
    if field.type == FieldKind.NUMBER and default != "":
        if isinstance(default, bool):
            raise ValueError(f"default of number field '{field.key}' must be a number")
        try:
            number = float(default)
        except (TypeError, ValueError):
            raise ValueError(f"default of number field '{field.key}' must be a number")
        if not math.isfinite(number):
            raise ValueError(f"default of number field '{field.key}' must be finite")


def _ensure_unique_keys(fields: Sequence[FieldDefinition], owner: str) -> None:
    seen = set()
    for field in fields:
        if field.key in seen:
            raise ValueError(f"duplicate field key '{field.key}' in {owner}")
        seen.add(field.key)


def _ensure_unique_ids(classes: Sequence[ClassDefinition], owner: str) -> None:
    seen = set()
    for cls in classes:
        if cls.id in seen:
            raise ValueError(f"duplicate class id '{cls.id}' in {owner}")
        seen.add(cls.id)


def resolve_class(schema: SchemaRoot, class_id: Optional[str]) -> Optional[ClassDefinition]:
    """
    Find a top-level class by id.

    Args:
        schema: Schema to search
        class_id: Top-level class id (None selects nothing)

    Returns:
        The class definition, or None when the id is unknown
    """
    if not class_id:
        return None
    for cls in schema.classes:
        if cls.id == class_id:
            return cls
    logger.debug(f"Class not found: {class_id}")
    return None


def find_sub_class(node: ClassDefinition, sub_id: Optional[str]) -> Optional[ClassDefinition]:
    """Find a direct sub-class of `node` by id."""
    if not sub_id:
        return None
    for child in node.children:
        if child.id == sub_id:
            return child
    return None


def find_field(fields: Optional[Sequence[FieldDefinition]], key: str) -> Optional[FieldDefinition]:
    """Find a field (or table column) by key."""
    for field in fields or []:
        if field.key == key:
            return field
    return None


def resolve_chain(schema: SchemaRoot, class_id: Optional[str],
                  selections: Optional[Sequence[str]] = None,
                  default_first: bool = True) -> List[ClassDefinition]:
    """
    Walk the sub-class chain below a top-level class.

    At each level the user-chosen sibling from `selections` is taken when one
    is recorded; otherwise the first declared sub-class is taken if
    `default_first` is set, else the walk stops. An unknown selected id ends
    the walk at the last valid level.

    Args:
        schema: Schema to walk
        class_id: Top-level class id
        selections: Chosen sub-class id per level
        default_first: Default unselected levels to the first sub-class

    Returns:
        The chain of sub-class definitions below the top-level class
        (empty when the class is unknown or has no sub-classes)
    """
    chain: List[ClassDefinition] = []
    current = resolve_class(schema, class_id)
    selections = list(selections or [])
    level = 0

    while current is not None and current.children:
        chosen_id = selections[level] if level < len(selections) else None
        if chosen_id:
            child = find_sub_class(current, chosen_id)
            if child is None:
                logger.warning(f"Sub-class '{chosen_id}' not found below '{current.id}' at level {level}")
                break
        elif default_first:
            child = current.children[0]
        else:
            break
        chain.append(child)
        current = child
        level += 1

    return chain


def node_path_key(path: Sequence[str]) -> str:
    """Flatten a node path into its records document key."""
    return NODE_PATH_SEPARATOR.join(path)


def split_node_path(key: str) -> NodePath:
    """Inverse of node_path_key."""
    return tuple(part for part in key.split(NODE_PATH_SEPARATOR) if part)


def resolve_node(schema: SchemaRoot, path: Sequence[str]) -> Optional[ClassDefinition]:
    """Resolve a full node path to its class definition, or None."""
    if not path:
        return None
    node = resolve_class(schema, path[0])
    for sub_id in path[1:]:
        if node is None:
            return None
        node = find_sub_class(node, sub_id)
    return node


def iter_class_paths(schema: SchemaRoot) -> Iterator[Tuple[NodePath, ClassDefinition]]:
    """Yield every node path in the schema with its class, depth first."""
    def walk(node: ClassDefinition, prefix: NodePath) -> Iterator[Tuple[NodePath, ClassDefinition]]:
        path = prefix + (node.id,)
        yield path, node
        for child in node.children:
            yield from walk(child, path)

    for cls in schema.classes:
        yield from walk(cls, ())


def check_acyclic(schema: SchemaRoot) -> None:
    """
    Verify that no class or table column tree revisits one of its ancestors.

    Documents parsed from JSON are always finite; this guards schemas that
    were assembled or mutated in code.

    Raises:
        ValueError: If a cycle is found
    """
    def walk_columns(field: FieldDefinition, ancestors: Tuple[int, ...]) -> None:
        if id(field) in ancestors:
            raise ValueError(f"table column '{field.key}' references an ancestor column")
        for column in field.columns or []:
            walk_columns(column, ancestors + (id(field),))

    def walk_class(node: ClassDefinition, ancestors: Tuple[int, ...]) -> None:
        if id(node) in ancestors:
            raise ValueError(f"class '{node.id}' references an ancestor class")
        for field in node.field_list:
            walk_columns(field, ())
        for child in node.children:
            walk_class(child, ancestors + (id(node),))

    for cls in schema.classes:
        walk_class(cls, ())


def schema_from_document(document: Any) -> SchemaRoot:
    """
    Parse a schema document into a SchemaRoot.

    Raises:
        pydantic.ValidationError: If the document does not match the schema shape
    """
    schema = SchemaRoot.model_validate(document)
    check_acyclic(schema)
    return schema


def schema_to_document(schema: SchemaRoot) -> Dict[str, Any]:
    """Serialize a SchemaRoot into its persisted JSON document shape."""
    return schema.model_dump(mode='json', by_alias=True, exclude_none=True)


def empty_schema() -> SchemaRoot:
    """Schema with no classes, used when nothing else can be loaded."""
    return SchemaRoot(classes=[])
