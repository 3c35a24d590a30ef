# File: crudgen/models.py
"""
NexaFlow CrudGen - Core Data Models
====================================
Pydantic V2 models describing entity persistence metadata (the input of the
pipeline), the normalized field descriptors handed to templates (the output
of the normalizer), and the generation settings.

Input models accept both snake_case names and the camelCase keys used by
ORM mapping dumps (``fieldName``, ``targetEntity``, ``joinColumns``,
``referencedColumnName`` ...), so a mapping document can be fed verbatim.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from crudgen.utils import route_name_prefix as _route_name_prefix

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AssociationType(str, Enum):
    """ORM association cardinalities."""

    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"
    MANY_TO_MANY = "ManyToMany"


class RelationshipKind(str, Enum):
    """Relationship tags carried by normalized fields (as seen by templates)."""

    ONE_TO_ONE = "1to1"
    ONE_TO_MANY = "1tom"
    MANY_TO_ONE = "mto1"


class ConfigFormat(str, Enum):
    """Routing configuration formats."""

    YML = "yml"
    XML = "xml"
    PHP = "php"
    ANNOTATION = "annotation"


DEFAULT_FORMAT: ConfigFormat = ConfigFormat.YML

# Formats that produce a standalone routing file.
ROUTING_FILE_FORMATS: Tuple[str, ...] = ("yml", "xml", "php")

READ_ACTIONS: Tuple[str, ...] = ("index", "show")
WRITE_ACTIONS: Tuple[str, ...] = ("new", "edit", "delete")
RECORD_ACTIONS: Tuple[str, ...] = ("show", "edit")


def resolve_format(value: Any) -> ConfigFormat:
    """Map a user-supplied format to a ``ConfigFormat``, defaulting to yml."""
    if isinstance(value, ConfigFormat):
        return value
    try:
        return ConfigFormat(str(value).strip().lower())
    except ValueError:
        logger.info(
            "Unknown configuration format %r, falling back to '%s'.",
            value,
            DEFAULT_FORMAT.value,
        )
        return DEFAULT_FORMAT


def short_name(type_name: str) -> str:
    """
    Return the last segment of a fully-qualified type name.

    Both backslash namespaces (``App\\Entity\\Customer``) and dotted module
    paths (``app.models.Customer``) are understood.
    """
    cleaned: str = type_name.strip().strip("\\")
    for separator in ("\\", "."):
        if separator in cleaned:
            cleaned = cleaned.rsplit(separator, 1)[-1]
    return cleaned


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

# Input metadata and normalizer output are never mutated after construction.
_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


def _with_names(mappings: Any, name_key: str, alias: str) -> Any:
    """Fill in the per-entry name from the mapping key when it is omitted."""
    if not isinstance(mappings, dict):
        return mappings
    filled: Dict[str, Any] = {}
    for key, value in mappings.items():
        if isinstance(value, dict) and name_key not in value and alias not in value:
            value = {**value, name_key: key}
        filled[key] = value
    return filled


# ---------------------------------------------------------------------------
# Entity metadata (input)
# ---------------------------------------------------------------------------


class FieldMapping(BaseModel):
    """A scalar column mapping of an entity."""

    model_config = _FROZEN_CONFIG

    field_name: str = Field(..., min_length=1, alias="fieldName")
    column_name: str = Field(default="", alias="columnName")
    type: str = Field(default="string", min_length=1, description="ORM column type.")
    length: Optional[int] = Field(default=None, ge=1)
    nullable: bool = Field(default=False)
    unique: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _default_column_name(cls, data: Any) -> Any:
        if isinstance(data, dict):
            has_column = data.get("column_name") or data.get("columnName")
            if not has_column:
                field_name = data.get("field_name", data.get("fieldName"))
                data = {**data, "column_name": field_name}
                data.pop("columnName", None)
        return data

    def __repr__(self) -> str:
        return f"<FieldMapping {self.field_name} ({self.column_name}: {self.type})>"


class JoinColumn(BaseModel):
    """One (local column, referenced column) pair of a foreign key."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Local (owning side) column.")
    referenced_column_name: str = Field(
        default="id",
        min_length=1,
        alias="referencedColumnName",
        description="Column on the target entity.",
    )

    def __repr__(self) -> str:
        return f"<JoinColumn {self.name} -> {self.referenced_column_name}>"


class AssociationMapping(BaseModel):
    """An association (relationship) mapping of an entity."""

    model_config = _FROZEN_CONFIG

    field_name: str = Field(..., min_length=1, alias="fieldName")
    type: AssociationType = Field(...)
    target_entity: str = Field(..., min_length=1, alias="targetEntity")
    is_owning_side: bool = Field(default=True, alias="isOwningSide")
    mapped_by: Optional[str] = Field(default=None, alias="mappedBy")
    inversed_by: Optional[str] = Field(default=None, alias="inversedBy")
    join_columns: List[JoinColumn] = Field(default_factory=list, alias="joinColumns")

    @model_validator(mode="before")
    @classmethod
    def _mapped_by_implies_inverse(cls, data: Any) -> Any:
        # an explicit isOwningSide always wins
        if not isinstance(data, dict):
            return data
        if "is_owning_side" in data or "isOwningSide" in data:
            return data
        if data.get("mapped_by") or data.get("mappedBy"):
            return {**data, "is_owning_side": False}
        return data

    @field_validator("type", mode="before")
    @classmethod
    def _accept_loose_type(cls, v: Any) -> Any:
        # "many_to_one", "many-to-one", "manytoone" -> "ManyToOne"
        if isinstance(v, str):
            compact: str = v.replace("_", "").replace("-", "").lower()
            for member in AssociationType:
                if member.value.lower() == compact:
                    return member
        return v

    @property
    def target_class(self) -> str:
        return short_name(self.target_entity)

    def __repr__(self) -> str:
        side: str = "owning" if self.is_owning_side else "inverse"
        return f"<Association {self.field_name} {self.type} -> {self.target_entity} ({side})>"


class EntityMetadata(BaseModel):
    """
    Persistence metadata of a single entity.

    ``field_mappings`` and ``association_mappings`` keep declaration order;
    the normalizer relies on it to order its output.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Fully-qualified entity name.")
    identifier: List[str] = Field(
        default_factory=list,
        description="Primary key columns, in order (column or field names).",
    )
    field_mappings: Dict[str, FieldMapping] = Field(
        default_factory=dict, alias="fieldMappings"
    )
    association_mappings: Dict[str, AssociationMapping] = Field(
        default_factory=dict, alias="associationMappings"
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_mapping_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("field_mappings", "fieldMappings"):
            if key in data:
                data[key] = _with_names(data[key], "field_name", "fieldName")
        for key in ("association_mappings", "associationMappings"):
            if key in data:
                data[key] = _with_names(data[key], "field_name", "fieldName")
        return data

    @field_validator("identifier", mode="before")
    @classmethod
    def _identifier_as_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @computed_field  # type: ignore[misc]
    @property
    def short_name(self) -> str:
        return short_name(self.name)

    @property
    def has_identifier(self) -> bool:
        return len(self.identifier) > 0

    def is_identifier(self, column: str) -> bool:
        """
        True when *column* is (part of) the primary key.

        Identifier entries naming a field count through that field's column.
        """
        if column in self.identifier:
            return True
        return any(
            mapping.column_name == column
            for name, mapping in self.field_mappings.items()
            if name in self.identifier
        )

    def get_association(self, field_name: str) -> Optional[AssociationMapping]:
        return self.association_mappings.get(field_name)

    def __repr__(self) -> str:
        return (
            f"<EntityMetadata {self.name} "
            f"({len(self.field_mappings)} fields, "
            f"{len(self.association_mappings)} associations)>"
        )


# ---------------------------------------------------------------------------
# Normalized fields (output)
# ---------------------------------------------------------------------------


class ScalarField(BaseModel):
    """A plain column, passed through from the field mappings."""

    model_config = _FROZEN_CONFIG

    kind: Literal["scalar"] = "scalar"
    field_name: str = Field(..., min_length=1)
    column_name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    length: Optional[int] = None
    nullable: bool = False

    @classmethod
    def from_mapping(cls, mapping: FieldMapping) -> "ScalarField":
        return cls(
            field_name=mapping.field_name,
            column_name=mapping.column_name,
            type=mapping.type,
            length=mapping.length,
            nullable=mapping.nullable,
        )

    @property
    def is_relationship(self) -> bool:
        return False


class ColumnPair(BaseModel):
    """One ``from`` -> ``to`` column link of a relationship, seen from the entity."""

    model_config = _FROZEN_CONFIG

    from_column: str = Field(..., min_length=1, alias="from")
    to_column: str = Field(..., min_length=1, alias="to")

    def as_dict(self) -> Dict[str, str]:
        return {"from": self.from_column, "to": self.to_column}

    def __repr__(self) -> str:
        return f"<ColumnPair {self.from_column} -> {self.to_column}>"


class RelationshipField(BaseModel):
    """A relationship entry replacing the raw foreign-key columns."""

    model_config = _FROZEN_CONFIG

    kind: RelationshipKind = Field(...)
    field_name: str = Field(..., min_length=1)
    target_class: str = Field(..., min_length=1, description="Short class name of the target.")
    mapping: Tuple[ColumnPair, ...] = Field(default_factory=tuple)

    @property
    def is_relationship(self) -> bool:
        return True

    @property
    def is_collection(self) -> bool:
        return self.kind == RelationshipKind.ONE_TO_MANY

    def mapping_dicts(self) -> List[Dict[str, str]]:
        return [pair.as_dict() for pair in self.mapping]

    def __repr__(self) -> str:
        return f"<RelationshipField {self.field_name} {self.kind} -> {self.target_class}>"


NormalizedField = Union[ScalarField, RelationshipField]


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class Bundle(BaseModel):
    """The target bundle the CRUD is generated into."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Bundle name, e.g. AcmeBlogBundle.")
    namespace: str = Field(..., min_length=1, description="Bundle PHP namespace.")
    path: str = Field(..., min_length=1, description="Bundle root directory.")

    @field_validator("namespace")
    @classmethod
    def _strip_namespace(cls, v: str) -> str:
        return v.strip("\\")


class GenerationConfig(BaseModel):
    """Settings for one generation request."""

    model_config = _SHARED_CONFIG

    format: ConfigFormat = Field(
        default=DEFAULT_FORMAT, description="Routing configuration format."
    )
    route_prefix: str = Field(default="", description="URL prefix of the routes.")
    with_write_actions: bool = Field(
        default=False, description="Generate new/edit/delete in addition to index/show."
    )
    force_overwrite: bool = Field(
        default=False, description="Replace an existing base controller."
    )
    templates_dir: Optional[str] = Field(
        default=None, description="Override of the packaged templates directory."
    )

    @field_validator("format", mode="before")
    @classmethod
    def _coerce_format(cls, v: Any) -> ConfigFormat:
        return resolve_format(v)

    @computed_field  # type: ignore[misc]
    @property
    def actions(self) -> List[str]:
        if self.with_write_actions:
            return [*READ_ACTIONS, *WRITE_ACTIONS]
        return list(READ_ACTIONS)

    @computed_field  # type: ignore[misc]
    @property
    def record_actions(self) -> List[str]:
        return [a for a in self.actions if a in RECORD_ACTIONS]

    @computed_field  # type: ignore[misc]
    @property
    def route_name_prefix(self) -> str:
        return _route_name_prefix(self.route_prefix)

    @property
    def writes_routing_file(self) -> bool:
        return self.format in ROUTING_FILE_FORMATS


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "AssociationType",
    "RelationshipKind",
    "ConfigFormat",
    "DEFAULT_FORMAT",
    "ROUTING_FILE_FORMATS",
    "READ_ACTIONS",
    "WRITE_ACTIONS",
    "RECORD_ACTIONS",
    "resolve_format",
    "short_name",
    "FieldMapping",
    "JoinColumn",
    "AssociationMapping",
    "EntityMetadata",
    "ScalarField",
    "ColumnPair",
    "RelationshipField",
    "NormalizedField",
    "Bundle",
    "GenerationConfig",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
