# File: crudgen/errors.py
"""Error definitions raised by the normalizer and the generation pipeline."""

from __future__ import annotations


class CrudGenError(RuntimeError):
    """Base class for all CrudGen failures."""


class UnsupportedEntityError(CrudGenError):
    """Raised when an entity cannot be scaffolded (e.g. it has no primary key)."""

    def __init__(self, entity: str, reason: str = "") -> None:
        self.entity = entity
        self.reason = reason or (
            "entity classes without a primary key are not supported"
        )
        super().__init__(f"Cannot generate CRUD for '{entity}': {self.reason}.")


class MetadataResolutionError(CrudGenError, LookupError):
    """Raised when a target entity (or one of its associations) cannot be resolved."""

    def __init__(self, entity: str, detail: str = "") -> None:
        self.entity = entity
        self.detail = detail
        message = f"Unable to resolve metadata for '{entity}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TargetAlreadyExistsError(CrudGenError):
    """Raised when a primary generated file exists and overwrite was not requested."""

    def __init__(self, target: str, what: str = "controller") -> None:
        self.target = target
        self.what = what
        super().__init__(
            f"Unable to generate the {what} as it already exists: {target}"
        )


class MetadataLoadError(CrudGenError, ValueError):
    """Raised when a mapping document cannot be read or fails validation."""


__all__ = [
    "CrudGenError",
    "UnsupportedEntityError",
    "MetadataResolutionError",
    "TargetAlreadyExistsError",
    "MetadataLoadError",
]
