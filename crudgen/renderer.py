# File: crudgen/renderer.py
"""
NexaFlow CrudGen - Template Renderer
=====================================
Thin wrapper around a Jinja2 ``Environment`` over the packaged
``crudgen/templates`` directory.

Templates are addressed by identifier relative to the templates root
(``crud/base.controller.php.jinja``) and receive a flat key/value context.
The generated artifacts are Twig views and PHP classes, so Twig syntax in
the templates is kept inside ``{% raw %}`` blocks.

Undefined context keys raise instead of rendering as empty strings.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from crudgen.models import short_name
from crudgen.utils import (
    namespace_to_path,
    to_snake_case,
    to_title_human,
    write_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.renderer")

TEMPLATES_DIR: Path = Path(__file__).resolve().parent / "templates"


def build_environment(templates_dir: Optional[Path] = None) -> Environment:
    """Create the Jinja2 environment used for every generated file."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
        autoescape=select_autoescape(disabled_extensions=("jinja",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["short_name"] = short_name
    env.filters["snake"] = to_snake_case
    env.filters["humanize"] = to_title_human
    env.filters["ns_path"] = namespace_to_path
    return env


class TemplateRenderer:
    """
    Renders templates to strings or straight to files.

    Usage::

        renderer = TemplateRenderer()
        renderer.render_file(
            "crud/config/routing.yml.jinja",
            Path("Resources/config/routing/post.yml"),
            {"actions": ["index", "show"], ...},
        )
    """

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        self.templates_dir: Path = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self._env: Environment = build_environment(self.templates_dir)
        logger.debug("TemplateRenderer initialised over %s.", self.templates_dir)

    @property
    def environment(self) -> Environment:
        return self._env

    def render(self, template: str, context: Mapping[str, Any]) -> str:
        """Render *template* with *context* and return the text."""
        return self._env.get_template(template).render(dict(context))

    def render_file(
        self,
        template: str,
        target: Path,
        context: Mapping[str, Any],
    ) -> int:
        """
        Render *template* into *target*, creating parent directories.

        Returns the number of bytes written.
        """
        content: str = self.render(template, context)
        written: int = write_file(Path(target), content)
        logger.info("Rendered %s → %s", template, target)
        return written

    def list_templates(self) -> List[str]:
        return sorted(self._env.list_templates(extensions=["jinja"]))

    def __repr__(self) -> str:
        return f"<TemplateRenderer {self.templates_dir}>"


__all__: List[str] = [
    "TEMPLATES_DIR",
    "build_environment",
    "TemplateRenderer",
]

logger.debug("crudgen.renderer loaded.")
