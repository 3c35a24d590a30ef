# File: crudgen/normalizer.py
"""
NexaFlow CrudGen - Relationship Normalizer
===========================================
Turns an entity's raw ORM metadata into the flat, render-ready field mapping
consumed by the view templates.

Scalar field mappings are passed through in declaration order.  Association
mappings are then folded in, one entry per association:

    ManyToOne          join columns used as-is (``from`` = local column,
                       ``to`` = referenced column); the local column is
                       dropped from the scalar fields unless it is part of
                       the primary key.
    OneToOne (owning)  same as ManyToOne.
    OneToOne (inverse) no local columns; the owning side's join columns are
                       looked up on the target entity (via ``mapped_by``)
                       and reversed.  Nothing is dropped.
    OneToMany          always inverse; resolved like OneToOne (inverse).
    ManyToMany         not supported, skipped without error.

The result is a fresh ``dict`` built from immutable input; the input
metadata is never modified, so repeated calls with the same input yield the
same output.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Set, Tuple

from crudgen.errors import MetadataResolutionError, UnsupportedEntityError
from crudgen.models import (
    AssociationMapping,
    AssociationType,
    ColumnPair,
    EntityMetadata,
    FieldMapping,
    NormalizedField,
    RelationshipField,
    RelationshipKind,
    ScalarField,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.normalizer")

MetadataResolver = Callable[[str], EntityMetadata]

_KIND_BY_TYPE: Dict[str, RelationshipKind] = {
    AssociationType.ONE_TO_ONE.value: RelationshipKind.ONE_TO_ONE,
    AssociationType.ONE_TO_MANY.value: RelationshipKind.ONE_TO_MANY,
    AssociationType.MANY_TO_ONE.value: RelationshipKind.MANY_TO_ONE,
}


# ---------------------------------------------------------------------------
# Precondition
# ---------------------------------------------------------------------------


def ensure_identifier(metadata: EntityMetadata) -> None:
    """Raise ``UnsupportedEntityError`` when the entity has no primary key."""
    if not metadata.has_identifier:
        raise UnsupportedEntityError(metadata.name)


# ---------------------------------------------------------------------------
# Join column resolution
# ---------------------------------------------------------------------------


def _owning_pairs(assoc: AssociationMapping) -> List[ColumnPair]:
    """Column pairs seen from the side that holds the foreign key."""
    return [
        ColumnPair(from_column=jc.name, to_column=jc.referenced_column_name)
        for jc in assoc.join_columns
    ]


def _inverse_pairs(
    metadata: EntityMetadata,
    assoc: AssociationMapping,
    resolve_metadata: MetadataResolver,
) -> List[ColumnPair]:
    """
    Column pairs for an inverse side, read from the owning side's mapping.

    The owning side's referenced column becomes ``from`` and its local
    column becomes ``to``.
    """
    if not assoc.mapped_by:
        raise MetadataResolutionError(
            assoc.target_entity,
            f"association '{metadata.name}::{assoc.field_name}' is an inverse "
            "side but declares no 'mapped_by'",
        )

    target: EntityMetadata = resolve_metadata(assoc.target_entity)
    owning = target.get_association(assoc.mapped_by)
    if owning is None:
        raise MetadataResolutionError(
            assoc.target_entity,
            f"no association named '{assoc.mapped_by}' "
            f"(mapped by '{metadata.name}::{assoc.field_name}')",
        )

    return [
        ColumnPair(from_column=jc.referenced_column_name, to_column=jc.name)
        for jc in owning.join_columns
    ]


def _resolve_association(
    metadata: EntityMetadata,
    assoc: AssociationMapping,
    resolve_metadata: MetadataResolver,
) -> Tuple[List[ColumnPair], Set[str]]:
    """
    Return the column pairs of *assoc* and the local columns it absorbs.

    Absorbed columns are owning-side join columns that are not part of the
    primary key; they disappear from the scalar fields.
    """
    owning: bool = assoc.type == AssociationType.MANY_TO_ONE or (
        assoc.type == AssociationType.ONE_TO_ONE and assoc.is_owning_side
    )

    if owning:
        pairs: List[ColumnPair] = _owning_pairs(assoc)
        absorbed: Set[str] = {
            p.from_column for p in pairs if not metadata.is_identifier(p.from_column)
        }
        return pairs, absorbed

    return _inverse_pairs(metadata, assoc, resolve_metadata), set()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(
    metadata: EntityMetadata,
    resolve_metadata: MetadataResolver,
) -> Dict[str, NormalizedField]:
    """
    Build the normalized field mapping of *metadata*.

    Args:
        metadata: The entity being scaffolded.
        resolve_metadata: Returns the metadata of a fully-qualified entity
            name.  Only called for inverse-side associations; its errors
            propagate unchanged.

    Returns:
        An ordered mapping field name → ``ScalarField`` | ``RelationshipField``.
        Scalar fields come first (declaration order, absorbed foreign-key
        columns removed), followed by one relationship entry per supported
        association.

    Raises:
        UnsupportedEntityError: The entity has no identifier columns.
        MetadataResolutionError: An inverse-side association could not be
            resolved against its target.
    """
    ensure_identifier(metadata)

    absorbed: Set[str] = set()
    relationships: Dict[str, RelationshipField] = {}

    for field_name, assoc in metadata.association_mappings.items():
        kind = _KIND_BY_TYPE.get(assoc.type)
        if kind is None:
            logger.debug(
                "Skipping %s association '%s::%s' (unsupported).",
                assoc.type,
                metadata.name,
                field_name,
            )
            continue

        pairs, dropped = _resolve_association(metadata, assoc, resolve_metadata)
        absorbed |= dropped
        relationships[field_name] = RelationshipField(
            kind=kind,
            field_name=field_name,
            target_class=assoc.target_class,
            mapping=tuple(pairs),
        )

    fields: Dict[str, NormalizedField] = {}
    for field_name, mapping in metadata.field_mappings.items():
        if _is_absorbed(field_name, mapping, absorbed):
            logger.debug(
                "Column '%s' of %s is represented by a relationship.",
                mapping.column_name,
                metadata.name,
            )
            continue
        fields[field_name] = ScalarField.from_mapping(mapping)

    # A relationship named like a scalar field replaces it in place.
    fields.update(relationships)

    logger.debug(
        "Normalized %s: %d scalar field(s), %d relationship(s).",
        metadata.name,
        len(fields) - len(relationships),
        len(relationships),
    )
    return fields


def _is_absorbed(field_name: str, mapping: FieldMapping, absorbed: Set[str]) -> bool:
    return field_name in absorbed or mapping.column_name in absorbed


def scalar_fields(fields: Dict[str, NormalizedField]) -> Dict[str, ScalarField]:
    """Only the scalar entries of a normalized mapping."""
    return {k: v for k, v in fields.items() if isinstance(v, ScalarField)}


def relationship_fields(fields: Dict[str, NormalizedField]) -> Dict[str, RelationshipField]:
    """Only the relationship entries of a normalized mapping."""
    return {k: v for k, v in fields.items() if isinstance(v, RelationshipField)}


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MetadataResolver",
    "ensure_identifier",
    "normalize",
    "scalar_fields",
    "relationship_fields",
]

logger.debug("crudgen.normalizer loaded.")
