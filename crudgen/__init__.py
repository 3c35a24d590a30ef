# File: crudgen/__init__.py
"""
NexaFlow CrudGen — CRUD Scaffolding from ORM Metadata
======================================================

Reads an entity's persistence metadata (primary key, field mappings,
one-to-one / one-to-many / many-to-one associations), folds foreign-key
columns into relationship entries, and renders a CRUD controller, Twig
views, a functional test and routing configuration into a bundle tree.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ CrudGenerator  │────▶│ TemplateRenderer │
    │   (cli.py)   │     │ (generator.py) │     │  (renderer.py)   │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌────────────┐ ┌───────────┐
             │ metadata │ │ normalizer │ │validators │
             │  (.py)   │ │   (.py)    │ │  (.py)    │
             └──────────┘ └────────────┘ └───────────┘

Usage::

    # As a library
    from crudgen import Bundle, CrudGenerator, GenerationConfig, MetadataRegistry
    registry = MetadataRegistry.from_file(Path("mapping.yaml"))
    CrudGenerator(registry).generate(bundle, "Post", registry.get(name), config)

    # From the command line
    python -m crudgen -m mapping.yaml -e Post --bundle-path src/Acme/BlogBundle \\
        --bundle-namespace "Acme\\BlogBundle" --with-write
"""

from __future__ import annotations

__version__: str = "0.1.0"
__author__: str = "NexaFlow Team"
__license__: str = "MIT"

from crudgen.errors import (
    CrudGenError,
    MetadataLoadError,
    MetadataResolutionError,
    TargetAlreadyExistsError,
    UnsupportedEntityError,
)
from crudgen.models import (
    AssociationMapping,
    AssociationType,
    Bundle,
    ColumnPair,
    ConfigFormat,
    EntityMetadata,
    FieldMapping,
    GenerationConfig,
    JoinColumn,
    NormalizedField,
    RelationshipField,
    RelationshipKind,
    ScalarField,
    short_name,
)
from crudgen.normalizer import normalize
from crudgen.metadata import MetadataRegistry
from crudgen.validators import ValidationResult, validate_metadata
from crudgen.renderer import TemplateRenderer
from crudgen.generator import CrudGenerator, GenerationReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core orchestrator
    "CrudGenerator",
    "GenerationReport",
    # Normalization
    "normalize",
    "short_name",
    # Models
    "AssociationMapping",
    "AssociationType",
    "Bundle",
    "ColumnPair",
    "ConfigFormat",
    "EntityMetadata",
    "FieldMapping",
    "GenerationConfig",
    "JoinColumn",
    "NormalizedField",
    "RelationshipField",
    "RelationshipKind",
    "ScalarField",
    # Metadata
    "MetadataRegistry",
    # Validation
    "validate_metadata",
    "ValidationResult",
    # Rendering
    "TemplateRenderer",
    # Errors
    "CrudGenError",
    "MetadataLoadError",
    "MetadataResolutionError",
    "TargetAlreadyExistsError",
    "UnsupportedEntityError",
]
