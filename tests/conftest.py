"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

All fixtures are session-scoped or function-scoped as appropriate.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict

import pytest
import yaml

from crudgen.metadata import MetadataRegistry, parse_mapping_document
from crudgen.models import Bundle, EntityMetadata


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
MAPPING_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "mapping_example.yaml"

SHOP: str = "Acme\\ShopBundle\\Entity\\"
ORDER: str = SHOP + "Order"
CUSTOMER: str = SHOP + "Customer"
ADDRESS: str = SHOP + "Address"
ORDER_LINE: str = SHOP + "OrderLine"
TAG: str = SHOP + "Tag"


def write_yaml(path: pathlib.Path, data: Dict[str, Any]) -> pathlib.Path:
    """Dump *data* keeping key order (the normalizer output depends on it)."""
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# Raw mapping data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_mapping_dict() -> Dict[str, Any]:
    """Load the reference mapping_example.yaml once per session and return as dict."""
    assert MAPPING_EXAMPLE_PATH.exists(), (
        f"Reference mapping not found at {MAPPING_EXAMPLE_PATH}. "
        "Make sure mapping_example.yaml is in the project root."
    )
    with open(MAPPING_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def mapping_dict(raw_mapping_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_mapping_dict)


@pytest.fixture()
def mapping_yaml_path(mapping_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the mapping dict to a temporary YAML file and return its path."""
    return write_yaml(tmp_path / "mapping.yaml", mapping_dict)


# ---------------------------------------------------------------------------
# Metadata fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry(mapping_dict: Dict[str, Any]) -> MetadataRegistry:
    """Registry holding every entity of the reference mapping."""
    return MetadataRegistry(parse_mapping_document(mapping_dict, source="mapping_example.yaml"))


@pytest.fixture()
def order_metadata(registry: MetadataRegistry) -> EntityMetadata:
    return registry.get(ORDER)


@pytest.fixture()
def customer_metadata(registry: MetadataRegistry) -> EntityMetadata:
    return registry.get(CUSTOMER)


@pytest.fixture()
def address_metadata(registry: MetadataRegistry) -> EntityMetadata:
    return registry.get(ADDRESS)


@pytest.fixture()
def order_line_metadata(registry: MetadataRegistry) -> EntityMetadata:
    return registry.get(ORDER_LINE)


@pytest.fixture()
def author_book_registry() -> MetadataRegistry:
    """Library entities: Author 1:N Book, owning side on Book.author."""
    author = EntityMetadata.model_validate({
        "name": "Library\\Entity\\Author",
        "identifier": ["id"],
        "fieldMappings": {
            "id": {"type": "integer"},
            "name": {"type": "string", "length": 150},
        },
        "associationMappings": {
            "books": {
                "type": "OneToMany",
                "targetEntity": "Library\\Entity\\Book",
                "isOwningSide": False,
                "mappedBy": "author",
            },
        },
    })
    book = EntityMetadata.model_validate({
        "name": "Library\\Entity\\Book",
        "identifier": ["id"],
        "fieldMappings": {
            "id": {"type": "integer"},
            "title": {"type": "string", "length": 250},
            "author_id": {"type": "integer"},
        },
        "associationMappings": {
            "author": {
                "type": "ManyToOne",
                "targetEntity": "Library\\Entity\\Author",
                "inversedBy": "books",
                "joinColumns": [{"name": "author_id", "referencedColumnName": "id"}],
            },
        },
    })
    return MetadataRegistry([author, book])


@pytest.fixture()
def no_pk_metadata() -> EntityMetadata:
    """Entity without identifier columns (not supported)."""
    return EntityMetadata.model_validate({
        "name": "Acme\\ShopBundle\\Entity\\AuditLog",
        "identifier": [],
        "fieldMappings": {
            "message": {"type": "text"},
            "logged_at": {"type": "datetime"},
        },
    })


# ---------------------------------------------------------------------------
# Doctrine mapping fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def doctrine_mapping_dict() -> Dict[str, Any]:
    """Doctrine-style YAML mapping for a small blog bundle."""
    return {
        "Acme\\BlogBundle\\Entity\\Post": {
            "type": "entity",
            "table": "post",
            "id": {
                "id": {"type": "integer", "generator": {"strategy": "AUTO"}},
            },
            "fields": {
                "title": {"type": "string", "length": 255},
                "publishedAt": {"type": "datetime", "column": "published_at", "nullable": True},
            },
            "manyToOne": {
                "author": {
                    "targetEntity": "Author",
                    "inversedBy": "posts",
                    "joinColumn": {"name": "author_id", "referencedColumnName": "id"},
                },
                "category": {"targetEntity": "Acme\\BlogBundle\\Entity\\Category"},
            },
            "manyToMany": {
                "tags": {"targetEntity": "Tag"},
            },
        },
        "Acme\\BlogBundle\\Entity\\Author": {
            "type": "entity",
            "id": {"id": {"type": "integer"}},
            "fields": {"name": {"type": "string"}},
            "oneToMany": {
                "posts": {"targetEntity": "Post", "mappedBy": "author"},
            },
        },
    }


@pytest.fixture()
def doctrine_yaml_path(
    doctrine_mapping_dict: Dict[str, Any], tmp_path: pathlib.Path
) -> pathlib.Path:
    """Write the Doctrine mapping to a temp ``.orm.yml`` file."""
    return write_yaml(tmp_path / "blog.orm.yml", doctrine_mapping_dict)


# ---------------------------------------------------------------------------
# Target bundle fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def bundle_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Empty bundle root inside tmp_path."""
    path = tmp_path / "src" / "Acme" / "ShopBundle"
    path.mkdir(parents=True)
    return path


@pytest.fixture()
def bundle(bundle_dir: pathlib.Path) -> Bundle:
    return Bundle(name="AcmeShopBundle", namespace="Acme\\ShopBundle", path=str(bundle_dir))
