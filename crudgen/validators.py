# File: crudgen/validators.py
"""
NexaFlow CrudGen - Metadata Validators
=======================================
A **pure-function validation pipeline** run before generation.

Pydantic validators handle per-field structural correctness of the
metadata models.  This module adds the semantic checks that decide whether
an entity can be scaffolded and whether its associations will normalize:
primary key presence, identifier columns that exist, owning sides with
join columns, inverse sides with a resolvable ``mapped_by``.

Usage::

    from crudgen.validators import validate_metadata
    result = validate_metadata(order, registry)
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from crudgen.models import AssociationMapping, AssociationType, EntityMetadata
from crudgen.metadata import MetadataRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = {"error": "✗", "warning": "⚠"}.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual validators
# ---------------------------------------------------------------------------


def validate_identifier(metadata: EntityMetadata) -> ValidationResult:
    """The entity must have a primary key made of known columns."""
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"entity": metadata.name}

    if not metadata.identifier:
        result.add_error(
            "NO_PRIMARY_KEY",
            f"Entity '{metadata.name}' has no primary key; "
            "CRUD generation requires one.",
            ctx,
        )
        return result

    known: Set[str] = set(metadata.field_mappings)
    known |= {f.column_name for f in metadata.field_mappings.values()}
    for assoc in metadata.association_mappings.values():
        # Foreign keys may double as the primary key.
        known |= {jc.name for jc in assoc.join_columns}

    for column in metadata.identifier:
        if column not in known:
            result.add_error(
                "UNKNOWN_IDENTIFIER",
                f"Identifier column '{column}' of '{metadata.name}' is not "
                "a mapped field.",
                {**ctx, "column": column},
            )
    return result


def _check_inverse_side(
    metadata: EntityMetadata,
    assoc: AssociationMapping,
    registry: Optional[MetadataRegistry],
    result: ValidationResult,
) -> None:
    ctx: Dict[str, Any] = {"entity": metadata.name, "association": assoc.field_name}
    if not assoc.mapped_by:
        result.add_error(
            "MISSING_MAPPED_BY",
            f"Inverse association '{assoc.field_name}' ({assoc.type}) "
            "declares no 'mapped_by'.",
            ctx,
        )
        return
    if registry is None:
        return

    target: Optional[EntityMetadata] = registry.find(assoc.target_entity)
    if target is None:
        result.add_error(
            "UNRESOLVED_TARGET",
            f"Target entity '{assoc.target_entity}' of '{assoc.field_name}' "
            "has no mapping definition.",
            ctx,
        )
        return

    owning: Optional[AssociationMapping] = target.get_association(assoc.mapped_by)
    if owning is None:
        result.add_error(
            "UNRESOLVED_TARGET",
            f"Target entity '{assoc.target_entity}' has no association "
            f"'{assoc.mapped_by}' (mapped by '{assoc.field_name}').",
            ctx,
        )
    elif not owning.join_columns:
        result.add_warning(
            "EMPTY_COLUMN_MAPPING",
            f"Owning side '{target.name}::{owning.field_name}' declares no "
            f"join columns; '{assoc.field_name}' will have an empty mapping.",
            ctx,
        )


def validate_associations(
    metadata: EntityMetadata,
    registry: Optional[MetadataRegistry] = None,
) -> ValidationResult:
    """
    Check every association against what the normalizer needs.

    When *registry* is given, inverse sides are resolved against it.
    """
    result: ValidationResult = ValidationResult()

    for assoc in metadata.association_mappings.values():
        ctx: Dict[str, Any] = {"entity": metadata.name, "association": assoc.field_name}

        if assoc.type == AssociationType.MANY_TO_MANY:
            result.add_warning(
                "MANY_TO_MANY_SKIPPED",
                f"Many-to-many association '{assoc.field_name}' is not "
                "supported and will not appear in the generated views.",
                ctx,
            )
            continue

        owning: bool = assoc.type == AssociationType.MANY_TO_ONE or (
            assoc.type == AssociationType.ONE_TO_ONE and assoc.is_owning_side
        )
        if owning:
            if not assoc.join_columns:
                result.add_error(
                    "MISSING_JOIN_COLUMNS",
                    f"Owning association '{assoc.field_name}' ({assoc.type}) "
                    "declares no join columns.",
                    ctx,
                )
        else:
            _check_inverse_side(metadata, assoc, registry, result)

    return result


# ---------------------------------------------------------------------------
# Master entry point
# ---------------------------------------------------------------------------


def validate_metadata(
    metadata: EntityMetadata,
    registry: Optional[MetadataRegistry] = None,
) -> ValidationResult:
    """Run all validators against one entity and merge their results."""
    result: ValidationResult = ValidationResult()

    result.merge(validate_identifier(metadata))
    validators: List[Callable[[EntityMetadata, Optional[MetadataRegistry]], ValidationResult]] = [
        validate_associations,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(metadata, registry))

    if result.has_errors:
        logger.error("Validation of %s FAILED. %s", metadata.name, result.summary())
    else:
        logger.info("Validation of %s passed. %s", metadata.name, result.summary())
    return result


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_identifier",
    "validate_associations",
    "validate_metadata",
]

logger.debug("crudgen.validators loaded — %d public symbols.", len(__all__))
