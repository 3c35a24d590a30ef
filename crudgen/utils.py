# File: crudgen/utils.py
"""
NexaFlow CrudGen - Utility Functions & Helpers
===============================================
Entity-name and path string helpers, file I/O, and timing utilities used
throughout the generation pipeline.

- Name helpers are pure string operations (namespace splitting, route and
  form-type names) cached with ``@lru_cache`` since templates ask for the
  same values many times per run.
- File I/O helpers use atomic write-to-temp then rename.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import shutil
import stat
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")

NAMESPACE_SEPARATOR: str = "\\"


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_title_human(name: str) -> str:
    """
    Convert an identifier to a human-readable label (used for table headers).

    Examples:
        >>> to_title_human("created_at")
        'Created at'
        >>> to_title_human("firstName")
        'First name'
    """
    words: str = to_snake_case(name).replace("_", " ")
    return words[:1].upper() + words[1:]


@functools.lru_cache(maxsize=None)
def split_entity(entity: str) -> Tuple[str, str]:
    """
    Split a bundle-relative entity name into (namespace, class).

    Examples:
        >>> split_entity("Blog\\\\Post")
        ('Blog', 'Post')
        >>> split_entity("Post")
        ('', 'Post')
    """
    parts: List[str] = entity.strip(NAMESPACE_SEPARATOR).split(NAMESPACE_SEPARATOR)
    entity_class: str = parts.pop()
    return NAMESPACE_SEPARATOR.join(parts), entity_class


@functools.lru_cache(maxsize=None)
def namespace_to_path(namespace: str) -> str:
    """``Blog\\Admin`` → ``Blog/Admin``."""
    return namespace.replace(NAMESPACE_SEPARATOR, "/")


@functools.lru_cache(maxsize=None)
def routing_basename(entity: str) -> str:
    """``Blog\\Post`` → ``blog_post`` (routing resource file name)."""
    return entity.replace(NAMESPACE_SEPARATOR, "_").lower()


@functools.lru_cache(maxsize=None)
def route_name_prefix(route_prefix: str) -> str:
    """``admin/post`` → ``admin_post``."""
    return route_prefix.replace("/", "_")


@functools.lru_cache(maxsize=None)
def form_type_name(bundle_namespace: str, entity: str) -> str:
    """
    Build the form type name used by generated functional tests.

    Examples:
        >>> form_type_name("Acme\\\\BlogBundle", "Blog\\\\Post")
        'acme_blogbundle_blog_post'
        >>> form_type_name("Acme\\\\BlogBundle", "Post")
        'acme_blogbundle_post'
    """
    entity_namespace, entity_class = split_entity(entity)
    parts: List[str] = [p for p in entity_namespace.split(NAMESPACE_SEPARATOR) if p]
    name: str = bundle_namespace.replace(NAMESPACE_SEPARATOR, "_")
    if parts:
        name += "_" + "_".join(parts)
    name += "_" + entity_class
    return name.lower()


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> bool:
    """
    Create directory (and parents) if it doesn't exist.

    Returns True when the directory had to be created.
    """
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Created directory: %s", path)
    return True


def _default_file_mode() -> int:
    """Mode of a newly created regular file under the current umask."""
    umask: int = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*, creating parent directories.

    When *atomic* is True, writes to a temporary file first then renames,
    which prevents partial writes on crash.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        # mkstemp creates 0600 files; keep the mode a plain open() would give
        mode: int = (
            stat.S_IMODE(path.stat().st_mode) if path.exists() else _default_file_mode()
        )
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            os.chmod(tmp_path, mode)
            shutil.move(tmp_path, str(path))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("normalize") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "NAMESPACE_SEPARATOR",
    "to_snake_case",
    "to_title_human",
    "split_entity",
    "namespace_to_path",
    "routing_basename",
    "route_name_prefix",
    "form_type_name",
    "ensure_directory",
    "write_file",
    "Timer",
]

logger.debug("crudgen.utils loaded — %d public symbols.", len(__all__))
