# File: crudgen/metadata.py
"""
NexaFlow CrudGen - Metadata Loading & Resolution
=================================================

Reads entity metadata from mapping documents (YAML or JSON) and resolves
fully-qualified entity names to ``EntityMetadata`` instances.

Two document layouts are understood:

1. **Native** — the ``EntityMetadata`` shape, either as a list::

       entities:
         - name: Acme\\ShopBundle\\Entity\\Order
           identifier: [id]
           fieldMappings: {id: {type: integer}, total: {type: decimal}}
           associationMappings:
             customer:
               type: ManyToOne
               targetEntity: Acme\\ShopBundle\\Entity\\Customer
               joinColumns: [{name: customer_id, referencedColumnName: id}]

   or as a mapping keyed by the fully-qualified name.

2. **Doctrine YAML mapping** (``*.orm.yml``) — ``id`` / ``fields`` /
   ``oneToOne`` / ``oneToMany`` / ``manyToOne`` / ``manyToMany`` sections
   under the entity name, with Doctrine's default join column naming.

``MetadataRegistry`` is callable, so it can be handed to
``crudgen.normalizer.normalize`` as the ``resolve_metadata`` capability.
When constructed with search paths it loads ``<Fully.Qualified.Name>.orm.yml``
(or ``.orm.yaml`` / ``.orm.json`` / ``<ShortName>.orm.*``) files on demand.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from crudgen.errors import MetadataLoadError, MetadataResolutionError
from crudgen.models import AssociationType, EntityMetadata, short_name
from crudgen.utils import NAMESPACE_SEPARATOR

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.metadata")

MAPPING_SUFFIXES: Tuple[str, ...] = (".orm.yml", ".orm.yaml", ".orm.json")

_DOCTRINE_ASSOCIATION_SECTIONS: Dict[str, AssociationType] = {
    "oneToOne": AssociationType.ONE_TO_ONE,
    "oneToMany": AssociationType.ONE_TO_MANY,
    "manyToOne": AssociationType.MANY_TO_ONE,
    "manyToMany": AssociationType.MANY_TO_MANY,
}
_DOCTRINE_MARKERS: FrozenSet[str] = frozenset(
    {"type", "table", "id", "fields", *_DOCTRINE_ASSOCIATION_SECTIONS}
)


def canonical_name(name: str) -> str:
    """Strip a leading namespace separator (``\\App\\Entity\\X`` → ``App\\Entity\\X``)."""
    return name.strip().lstrip(NAMESPACE_SEPARATOR)


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises MetadataLoadError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MetadataLoadError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MetadataLoadError(
            f"Expected a JSON object at top level in {path}, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises MetadataLoadError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise MetadataLoadError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MetadataLoadError(
            f"Expected a YAML mapping at top level in {path}, got {type(data).__name__}."
        )
    return data


def load_mapping_file(path: Path) -> Dict[str, Any]:
    """
    Load a mapping document (JSON or YAML), dispatching on the extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        MetadataLoadError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Mapping file not found: {path}")
    if not path.is_file():
        raise MetadataLoadError(f"Mapping path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except MetadataLoadError:
        return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# Document parsing
# ---------------------------------------------------------------------------


def _qualify(target: str, owner: str) -> str:
    """Doctrine resolves a bare target class against the owner's namespace."""
    target = canonical_name(target)
    if NAMESPACE_SEPARATOR in target or NAMESPACE_SEPARATOR not in owner:
        return target
    namespace: str = owner.rsplit(NAMESPACE_SEPARATOR, 1)[0]
    return f"{namespace}{NAMESPACE_SEPARATOR}{target}"


def _doctrine_join_columns(field_name: str, spec: Dict[str, Any]) -> List[Dict[str, str]]:
    if "joinColumns" in spec:
        raw = spec["joinColumns"] or {}
        if isinstance(raw, dict):
            # joinColumns: {author_id: {referencedColumnName: id}}
            return [
                {
                    "name": name,
                    "referencedColumnName": (opts or {}).get("referencedColumnName", "id"),
                }
                for name, opts in raw.items()
            ]
        return [dict(jc) for jc in raw]
    if "joinColumn" in spec:
        jc: Dict[str, Any] = dict(spec["joinColumn"] or {})
        referenced: str = jc.get("referencedColumnName", "id")
        return [{"name": jc.get("name", f"{field_name}_{referenced}"), "referencedColumnName": referenced}]
    return [{"name": f"{field_name}_id", "referencedColumnName": "id"}]


def parse_doctrine_entity(name: str, spec: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert one Doctrine YAML mapping entry into the native metadata shape.

    Identifier fields are also scalar fields (as in Doctrine's own
    ``fieldMappings``); the identifier lists their column names.
    """
    name = canonical_name(name)
    field_mappings: Dict[str, Dict[str, Any]] = {}
    identifier: List[str] = []

    for field_name, opts in (spec.get("id") or {}).items():
        opts = opts or {}
        column: str = opts.get("column", field_name)
        field_mappings[field_name] = {
            "fieldName": field_name,
            "columnName": column,
            "type": opts.get("type", "integer"),
        }
        identifier.append(column)

    for field_name, opts in (spec.get("fields") or {}).items():
        opts = opts or {}
        entry: Dict[str, Any] = {
            "fieldName": field_name,
            "columnName": opts.get("column", field_name),
            "type": opts.get("type", "string"),
            "nullable": bool(opts.get("nullable", False)),
            "unique": bool(opts.get("unique", False)),
        }
        if opts.get("length") is not None:
            entry["length"] = opts["length"]
        field_mappings[field_name] = entry

    associations: Dict[str, Dict[str, Any]] = {}
    for section, assoc_type in _DOCTRINE_ASSOCIATION_SECTIONS.items():
        for field_name, opts in (spec.get(section) or {}).items():
            opts = opts or {}
            if not opts.get("targetEntity"):
                raise MetadataLoadError(
                    f"Association '{name}::{field_name}' declares no targetEntity."
                )
            mapped_by: Optional[str] = opts.get("mappedBy")
            owning: bool = assoc_type in (
                AssociationType.MANY_TO_ONE,
                AssociationType.MANY_TO_MANY,
            ) or (assoc_type == AssociationType.ONE_TO_ONE and mapped_by is None)
            entry = {
                "fieldName": field_name,
                "type": assoc_type.value,
                "targetEntity": _qualify(opts["targetEntity"], name),
                "isOwningSide": owning,
                "mappedBy": mapped_by,
                "inversedBy": opts.get("inversedBy"),
            }
            if owning and assoc_type != AssociationType.MANY_TO_MANY:
                entry["joinColumns"] = _doctrine_join_columns(field_name, opts)
            associations[field_name] = entry

    return {
        "name": name,
        "identifier": identifier,
        "fieldMappings": field_mappings,
        "associationMappings": associations,
    }


def _is_doctrine_entry(spec: Any) -> bool:
    return isinstance(spec, dict) and bool(_DOCTRINE_MARKERS & set(spec))


def parse_mapping_document(
    raw: Dict[str, Any], source: Optional[str] = None
) -> List[EntityMetadata]:
    """
    Parse a loaded mapping document into validated ``EntityMetadata`` models.

    Raises:
        MetadataLoadError: If the layout is not recognised or an entry fails
            pydantic validation.
    """
    entries: List[Dict[str, Any]] = []

    if "entities" in raw:
        items = raw["entities"]
        if isinstance(items, dict):
            items = [{"name": k, **(v or {})} for k, v in items.items()]
        if not isinstance(items, list):
            raise MetadataLoadError(
                f"'entities' must be a list or mapping (in {source or 'document'})."
            )
        entries.extend(items)
    else:
        for name, spec in raw.items():
            if not isinstance(spec, dict):
                raise MetadataLoadError(
                    f"Entry '{name}' must be a mapping (in {source or 'document'})."
                )
            if _is_doctrine_entry(spec):
                entries.append(parse_doctrine_entity(name, spec))
            else:
                entries.append({"name": name, **spec})

    parsed: List[EntityMetadata] = []
    for entry in entries:
        try:
            metadata = EntityMetadata.model_validate(entry)
        except ValidationError as exc:
            label: str = entry.get("name", "?") if isinstance(entry, dict) else "?"
            raise MetadataLoadError(
                f"Invalid metadata for '{label}' (in {source or 'document'}): {exc}"
            ) from exc
        parsed.append(metadata.model_copy(update={"name": canonical_name(metadata.name)}))

    logger.debug("Parsed %d entity definition(s) from %s.", len(parsed), source or "document")
    return parsed


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class MetadataRegistry:
    """
    In-memory catalog of entity metadata keyed by fully-qualified name.

    Usage::

        registry = MetadataRegistry.from_file(Path("mapping.yaml"))
        order = registry.get("Acme\\\\ShopBundle\\\\Entity\\\\Order")
        fields = normalize(order, registry)

    A registry holds state for its own lifetime only; create one per
    generation request.
    """

    def __init__(
        self,
        entities: Iterable[EntityMetadata] = (),
        *,
        search_paths: Sequence[Path] = (),
    ) -> None:
        self._entities: Dict[str, EntityMetadata] = {}
        self._search_paths: List[Path] = [Path(p) for p in search_paths]
        for metadata in entities:
            self.register(metadata)

    # -----------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------

    @classmethod
    def from_file(cls, path: Path) -> "MetadataRegistry":
        """Build a registry from one mapping document or a directory of them."""
        registry = cls(search_paths=[path] if path.is_dir() else [path.parent])
        if path.is_dir():
            registry.load_directory(path)
        else:
            registry.load_file(path)
        return registry

    def register(self, metadata: EntityMetadata) -> None:
        key: str = canonical_name(metadata.name)
        if key in self._entities:
            logger.warning("Metadata for '%s' registered twice; keeping the latest.", key)
        self._entities[key] = metadata

    def load_file(self, path: Path) -> List[EntityMetadata]:
        """Load every entity declared in *path* and register it."""
        parsed: List[EntityMetadata] = parse_mapping_document(
            load_mapping_file(path), source=str(path)
        )
        for metadata in parsed:
            self.register(metadata)
        logger.info("Loaded %d entity definition(s) from %s.", len(parsed), path)
        return parsed

    def load_directory(self, directory: Path) -> int:
        """Load all ``*.orm.{yml,yaml,json}`` documents under *directory*."""
        count: int = 0
        for path in sorted(directory.rglob("*")):
            if path.is_file() and path.name.lower().endswith(MAPPING_SUFFIXES):
                count += len(self.load_file(path))
        return count

    # -----------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------

    def get(self, name: str) -> EntityMetadata:
        """
        Resolve *name* to its metadata.

        Raises:
            MetadataResolutionError: If no definition can be found.
        """
        key: str = canonical_name(name)
        if key not in self._entities and not self._load_on_demand(key):
            raise MetadataResolutionError(key, "no mapping definition found")
        return self._entities[key]

    __call__ = get

    def find(self, name: str) -> Optional[EntityMetadata]:
        """Like ``get`` but returns None instead of raising."""
        try:
            return self.get(name)
        except MetadataResolutionError:
            return None

    def _candidate_files(self, key: str) -> Iterator[Path]:
        stems = (key.replace(NAMESPACE_SEPARATOR, "."), short_name(key))
        for directory in self._search_paths:
            for stem in stems:
                for suffix in MAPPING_SUFFIXES:
                    yield directory / f"{stem}{suffix}"

    def _load_on_demand(self, key: str) -> bool:
        for candidate in self._candidate_files(key):
            if not candidate.is_file():
                continue
            try:
                self.load_file(candidate)
            except MetadataLoadError as exc:
                raise MetadataResolutionError(key, str(exc)) from exc
            if key in self._entities:
                return True
        return False

    @property
    def names(self) -> List[str]:
        return list(self._entities)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_name(name) in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[EntityMetadata]:
        return iter(self._entities.values())

    def __repr__(self) -> str:
        return f"<MetadataRegistry {len(self._entities)} entities>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MAPPING_SUFFIXES",
    "canonical_name",
    "load_mapping_file",
    "parse_doctrine_entity",
    "parse_mapping_document",
    "MetadataRegistry",
]

logger.debug("crudgen.metadata loaded.")
