# File: crudgen/introspection.py
"""
NexaFlow CrudGen - SQLAlchemy Introspection Adapter
====================================================
Builds ``EntityMetadata`` from mapped SQLAlchemy 2.0 declarative classes so
that an existing ORM model can be scaffolded without writing a mapping
document.

Relationship directions are translated as follows:

    MANYTOONE, reverse side ``uselist=False``   → OneToOne (owning)
    MANYTOONE                                   → ManyToOne
    ONETOMANY, ``uselist=False``                → OneToOne (inverse)
    ONETOMANY                                   → OneToMany
    MANYTOMANY                                  → ManyToMany

Inverse sides use ``back_populates`` as their ``mapped_by``, so both ends of
a bidirectional relationship must name each other.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, inspect
from sqlalchemy.orm import Mapper, RelationshipProperty, configure_mappers

from crudgen.metadata import MetadataRegistry
from crudgen.models import AssociationType, EntityMetadata

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.introspection")


def entity_name(cls: type) -> str:
    """Fully-qualified (dotted) name of a mapped class."""
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_one_to_one_owner(rel: RelationshipProperty) -> bool:
    reverse: Optional[str] = rel.back_populates
    if not reverse or reverse not in rel.mapper.relationships:
        return False
    return rel.mapper.relationships[reverse].uselist is False


def _association(rel: RelationshipProperty) -> Dict[str, Any]:
    direction: str = rel.direction.name
    target: str = entity_name(rel.mapper.class_)
    entry: Dict[str, Any] = {
        "field_name": rel.key,
        "target_entity": target,
    }

    if direction == "MANYTOMANY":
        entry.update(type=AssociationType.MANY_TO_MANY, inversed_by=rel.back_populates)
    elif direction == "MANYTOONE":
        one_to_one: bool = _is_one_to_one_owner(rel)
        entry.update(
            type=AssociationType.ONE_TO_ONE if one_to_one else AssociationType.MANY_TO_ONE,
            is_owning_side=True,
            inversed_by=rel.back_populates,
            join_columns=[
                {"name": local.name, "referenced_column_name": remote.name}
                for local, remote in rel.local_remote_pairs
            ],
        )
    else:
        entry.update(
            type=AssociationType.ONE_TO_ONE if rel.uselist is False else AssociationType.ONE_TO_MANY,
            is_owning_side=False,
            mapped_by=rel.back_populates,
        )
        if rel.back_populates is None:
            logger.warning(
                "Relationship '%s.%s' has no back_populates; it cannot be "
                "resolved against its owning side.",
                rel.parent.class_.__name__,
                rel.key,
            )
    return entry


def metadata_from_class(cls: type) -> EntityMetadata:
    """Describe a mapped class as ``EntityMetadata``."""
    configure_mappers()
    mapper: Mapper = inspect(cls)

    field_mappings: Dict[str, Dict[str, Any]] = {}
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if not isinstance(column, Column):
            continue  # column_property() expression
        field_mappings[attr.key] = {
            "field_name": attr.key,
            "column_name": column.name,
            "type": column.type.__visit_name__,
            "length": getattr(column.type, "length", None),
            "nullable": bool(column.nullable),
            "unique": bool(column.unique),
        }

    associations: Dict[str, Dict[str, Any]] = {
        rel.key: _association(rel) for rel in mapper.relationships
    }

    return EntityMetadata(
        name=entity_name(cls),
        identifier=[column.name for column in mapper.primary_key],
        field_mappings=field_mappings,
        association_mappings=associations,
    )


def registry_from_classes(classes: Iterable[type]) -> MetadataRegistry:
    """Registry holding the metadata of every class in *classes*."""
    registry = MetadataRegistry()
    for cls in classes:
        registry.register(metadata_from_class(cls))
    return registry


def registry_from_base(base: Any) -> MetadataRegistry:
    """Registry for every class mapped by a declarative base."""
    classes: List[type] = sorted(
        (mapper.class_ for mapper in base.registry.mappers),
        key=entity_name,
    )
    logger.info("Introspecting %d mapped class(es).", len(classes))
    return registry_from_classes(classes)


__all__: List[str] = [
    "entity_name",
    "metadata_from_class",
    "registry_from_classes",
    "registry_from_base",
]
