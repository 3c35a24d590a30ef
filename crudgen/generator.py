# File: crudgen/generator.py
"""
NexaFlow CrudGen - CRUD Generation Pipeline (Orchestrator)
===========================================================

Connects every phase of one generation request:

    Entity Metadata → Normalization → Template Rendering → Bundle Files

Workflow::

    1. Check the entity has a primary key (``UnsupportedEntityError``).
    2. Normalize field and association mappings (normalizer.py).
    3. Render the base controller, then the child controller if missing.
    4. Create the views directory and render index/show/new/edit views.
    5. Render the functional test class.
    6. Render the routing file (yml / xml / php formats only).
    7. Return a ``GenerationReport`` with the files touched and timings.

Error handling strategy:
    - Nothing is caught here: precondition, resolution and collision errors
      propagate to the caller unchanged.
    - Files written before an error are left in place.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from crudgen.errors import TargetAlreadyExistsError
from crudgen.models import (
    AssociationType,
    Bundle,
    ConfigFormat,
    EntityMetadata,
    GenerationConfig,
    NormalizedField,
)
from crudgen.normalizer import MetadataResolver, ensure_identifier, normalize
from crudgen.renderer import TemplateRenderer
from crudgen.utils import (
    NAMESPACE_SEPARATOR,
    Timer,
    ensure_directory,
    form_type_name,
    namespace_to_path,
    routing_basename,
    split_entity,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")

# ---------------------------------------------------------------------------
# Template identifiers
# ---------------------------------------------------------------------------

BASE_CONTROLLER_TEMPLATE: str = "crud/base.controller.php.jinja"
CHILD_CONTROLLER_TEMPLATE: str = "crud/child.controller.php.jinja"
TEST_TEMPLATE: str = "crud/tests/test.php.jinja"
VIEW_TEMPLATE: str = "crud/views/{view}.html.twig.jinja"
ROUTING_TEMPLATE: str = "crud/config/routing.{format}.jinja"

# Views rendered when the matching action is enabled; index is unconditional.
OPTIONAL_VIEWS: Tuple[str, ...] = ("show", "new", "edit")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``CrudGenerator.generate()``.

    Lists every file written or deliberately left untouched, plus the
    normalized fields handed to the view templates.
    """

    success: bool = False
    entity: str = ""
    bundle_path: str = ""
    format: str = ""
    actions: List[str] = field(default_factory=list)

    fields: Dict[str, NormalizedField] = field(default_factory=dict)
    skipped_associations: List[str] = field(default_factory=list)

    files_written: List[str] = field(default_factory=list)
    files_skipped: List[str] = field(default_factory=list)
    directories_created: List[str] = field(default_factory=list)
    total_bytes: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)

    def record_file(self, path: Path, byte_count: int) -> None:
        self.files_written.append(str(path))
        self.total_bytes += byte_count

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  NexaFlow CrudGen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Entity:           {self.entity}")
        lines.append(f"  Bundle path:      {self.bundle_path}")
        lines.append(f"  Format:           {self.format}")
        lines.append(f"  Actions:          {', '.join(self.actions)}")
        lines.append(f"  Fields:           {len(self.fields)}")
        lines.append(f"  Files written:    {len(self.files_written)}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.files_written:
            lines.append(f"{'─'*60}")
            lines.append(f"  Files Written ({len(self.files_written)}):")
            for path in self.files_written:
                lines.append(f"    + {path}")

        if self.files_skipped:
            lines.append(f"{'─'*60}")
            lines.append(f"  Files Kept ({len(self.files_skipped)}):")
            for path in self.files_skipped:
                lines.append(f"    ⊘ {path}")

        if self.skipped_associations:
            lines.append(f"{'─'*60}")
            lines.append(
                f"  Skipped Associations ({len(self.skipped_associations)}):"
            )
            for name in self.skipped_associations:
                lines.append(f"    ⊘ {name}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# CrudGenerator: master orchestrator
# ---------------------------------------------------------------------------


class CrudGenerator:
    """
    Generates a CRUD controller, its views, a functional test and routing
    configuration for one entity of a bundle.

    Usage::

        registry = MetadataRegistry.from_file(Path("mapping.orm.yml"))
        generator = CrudGenerator(registry)
        report = generator.generate(
            bundle=Bundle(name="AcmeBlogBundle", namespace="Acme\\\\BlogBundle",
                          path="src/Acme/BlogBundle"),
            entity="Post",
            metadata=registry.get("Acme\\\\BlogBundle\\\\Entity\\\\Post"),
            config=GenerationConfig(route_prefix="post", with_write_actions=True),
        )
        print(report.summary())

    The generator is reusable; create once, call generate() many times.
    """

    def __init__(
        self,
        resolve_metadata: MetadataResolver,
        *,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        """
        Args:
            resolve_metadata: Looks up the metadata of association targets
                (a ``MetadataRegistry`` works as-is).
            renderer: Template renderer; defaults to the packaged templates.
        """
        self._resolve_metadata: MetadataResolver = resolve_metadata
        self._renderer: Optional[TemplateRenderer] = renderer

    def _renderer_for(self, config: GenerationConfig) -> TemplateRenderer:
        if self._renderer is None or (
            config.templates_dir
            and Path(config.templates_dir) != self._renderer.templates_dir
        ):
            templates_dir = Path(config.templates_dir) if config.templates_dir else None
            self._renderer = TemplateRenderer(templates_dir)
        return self._renderer

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate(
        self,
        bundle: Bundle,
        entity: str,
        metadata: EntityMetadata,
        config: Optional[GenerationConfig] = None,
    ) -> GenerationReport:
        """
        Generate every CRUD artifact of *entity* into *bundle*.

        Args:
            bundle: Target bundle (name, namespace, root path).
            entity: Entity name relative to the bundle's entity namespace,
                possibly with sub-namespaces (``Blog\\Post``).
            metadata: Persistence metadata of the entity.
            config: Format, route prefix, actions and overwrite policy.

        Raises:
            UnsupportedEntityError: The entity has no primary key.
            MetadataResolutionError: An association target could not be
                resolved.
            TargetAlreadyExistsError: The base controller exists and
                ``force_overwrite`` is off.
        """
        config = config or GenerationConfig()
        entity = entity.strip(NAMESPACE_SEPARATOR)
        pipeline_start: float = time.perf_counter()

        report: GenerationReport = GenerationReport(
            entity=entity,
            bundle_path=str(bundle.path),
            format=ConfigFormat(config.format).value,
            actions=list(config.actions),
        )

        with Timer("check_identifier") as t:
            ensure_identifier(metadata)
        self._record_step(report, "Check Identifier", t, f"{len(metadata.identifier)} column(s)")

        with Timer("normalize") as t:
            report.fields = normalize(metadata, self._resolve_metadata)
            report.skipped_associations = [
                name
                for name, assoc in metadata.association_mappings.items()
                if assoc.type == AssociationType.MANY_TO_MANY
            ]
        self._record_step(report, "Normalize Fields", t, f"{len(report.fields)} field(s)")

        ctx: _Context = _Context(bundle, entity, metadata, config, report)
        renderer: TemplateRenderer = self._renderer_for(config)

        with Timer("controller") as t:
            self._generate_controller_class(renderer, ctx)
        self._record_step(report, "Controller Classes", t)

        with Timer("views") as t:
            rendered_views: List[str] = self._generate_views(renderer, ctx)
        self._record_step(report, "Views", t, ", ".join(rendered_views))

        with Timer("test_class") as t:
            self._generate_test_class(renderer, ctx)
        self._record_step(report, "Test Class", t)

        with Timer("routing") as t:
            wrote_routing: bool = self._generate_configuration(renderer, ctx)
        self._record_step(
            report,
            "Routing Config",
            t,
            report.format if wrote_routing else "annotations in controller",
        )

        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        report.success = True
        logger.info(
            "Generated CRUD for %s: %d file(s), %d kept, in %.3fs.",
            entity,
            len(report.files_written),
            len(report.files_skipped),
            report.total_elapsed_seconds,
        )
        return report

    # -----------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------

    def _generate_controller_class(self, renderer: TemplateRenderer, ctx: "_Context") -> None:
        controller_dir: Path = (
            ctx.bundle_path / "Controller" / "Crud" / namespace_to_path(ctx.entity_namespace)
        )
        base_target: Path = controller_dir / f"Base{ctx.entity_class}Controller.php"

        if base_target.exists() and not ctx.config.force_overwrite:
            raise TargetAlreadyExistsError(str(base_target))

        context: Dict[str, Any] = ctx.controller_context()
        self._render(renderer, ctx, BASE_CONTROLLER_TEMPLATE, base_target, context)

        child_target: Path = controller_dir / f"{ctx.entity_class}Controller.php"
        if child_target.exists():
            logger.info("Keeping existing controller %s", child_target)
            ctx.report.files_skipped.append(str(child_target))
            return
        self._render(renderer, ctx, CHILD_CONTROLLER_TEMPLATE, child_target, context)

    def _generate_views(self, renderer: TemplateRenderer, ctx: "_Context") -> List[str]:
        views_dir: Path = (
            ctx.bundle_path / "Resources" / "views" / "Crud" / namespace_to_path(ctx.entity)
        )
        if ensure_directory(views_dir):
            ctx.report.directories_created.append(str(views_dir))

        rendered: List[str] = ["index"]
        self._render(
            renderer, ctx, VIEW_TEMPLATE.format(view="index"),
            views_dir / "index.html.twig", ctx.index_view_context(),
        )
        for view in OPTIONAL_VIEWS:
            if view not in ctx.config.actions:
                continue
            self._render(
                renderer, ctx, VIEW_TEMPLATE.format(view=view),
                views_dir / f"{view}.html.twig", ctx.view_context(view),
            )
            rendered.append(view)
        return rendered

    def _generate_test_class(self, renderer: TemplateRenderer, ctx: "_Context") -> None:
        target: Path = (
            ctx.bundle_path
            / "Tests"
            / "Controller"
            / namespace_to_path(ctx.entity_namespace)
            / f"{ctx.entity_class}ControllerTest.php"
        )
        self._render(renderer, ctx, TEST_TEMPLATE, target, ctx.test_context())

    def _generate_configuration(self, renderer: TemplateRenderer, ctx: "_Context") -> bool:
        if not ctx.config.writes_routing_file:
            logger.debug("Format '%s' keeps routes in the controller.", ctx.report.format)
            return False

        target: Path = (
            ctx.bundle_path
            / "Resources"
            / "config"
            / "routing"
            / f"{routing_basename(ctx.entity)}.{ctx.report.format}"
        )
        self._render(
            renderer, ctx, ROUTING_TEMPLATE.format(format=ctx.report.format),
            target, ctx.routing_context(),
        )
        return True

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _render(
        renderer: TemplateRenderer,
        ctx: "_Context",
        template: str,
        target: Path,
        context: Dict[str, Any],
    ) -> None:
        byte_count: int = renderer.render_file(template, target, context)
        ctx.report.record_file(target, byte_count)

    @staticmethod
    def _record_step(
        report: GenerationReport,
        name: str,
        timer: Timer,
        detail: str = "",
    ) -> None:
        report.step_metrics.append(GenerationStepMetric(
            step_name=name,
            success=True,
            elapsed_seconds=timer.elapsed,
            detail=detail,
        ))


# ---------------------------------------------------------------------------
# Template contexts
# ---------------------------------------------------------------------------


class _Context:
    """Per-request values shared by every template context."""

    def __init__(
        self,
        bundle: Bundle,
        entity: str,
        metadata: EntityMetadata,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> None:
        self.bundle: Bundle = bundle
        self.bundle_path: Path = Path(bundle.path)
        self.entity: str = entity
        self.entity_namespace, self.entity_class = split_entity(entity)
        self.metadata: EntityMetadata = metadata
        self.config: GenerationConfig = config
        self.report: GenerationReport = report

    def _routes(self) -> Dict[str, Any]:
        return {
            "route_prefix": self.config.route_prefix,
            "route_name_prefix": self.config.route_name_prefix,
        }

    def controller_context(self) -> Dict[str, Any]:
        return {
            "actions": self.config.actions,
            **self._routes(),
            "bundle": self.bundle.name,
            "entity": self.entity,
            "identifier": list(self.metadata.identifier),
            "entity_class": self.entity_class,
            "namespace": self.bundle.namespace,
            "entity_namespace": self.entity_namespace,
            "format": self.report.format,
        }

    def index_view_context(self) -> Dict[str, Any]:
        return {
            "bundle": self.bundle.name,
            "entity": self.entity,
            "identifier": list(self.metadata.identifier),
            "fields": self.report.fields,
            "actions": self.config.actions,
            "record_actions": self.config.record_actions,
            **self._routes(),
        }

    def view_context(self, view: str) -> Dict[str, Any]:
        if view == "show":
            return {
                "bundle": self.bundle.name,
                "entity": self.entity,
                "identifier": list(self.metadata.identifier),
                "fields": self.report.fields,
                "actions": self.config.actions,
                **self._routes(),
            }
        if view == "new":
            return {
                "bundle": self.bundle.name,
                "entity": self.entity,
                **self._routes(),
                "actions": self.config.actions,
            }
        # edit works on the raw scalar mappings
        return {
            **self._routes(),
            "identifier": list(self.metadata.identifier),
            "entity": self.entity,
            "fields": dict(self.metadata.field_mappings),
            "bundle": self.bundle.name,
            "actions": self.config.actions,
        }

    def test_context(self) -> Dict[str, Any]:
        return {
            **self._routes(),
            "entity": self.entity,
            "identifier": list(self.metadata.identifier),
            "bundle": self.bundle.name,
            "entity_class": self.entity_class,
            "namespace": self.bundle.namespace,
            "entity_namespace": self.entity_namespace,
            "actions": self.config.actions,
            "form_type_name": form_type_name(self.bundle.namespace, self.entity),
        }

    def routing_context(self) -> Dict[str, Any]:
        return {
            "actions": self.config.actions,
            **self._routes(),
            "bundle": self.bundle.name,
            "entity": self.entity,
            "identifier": list(self.metadata.identifier),
        }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CrudGenerator",
    "GenerationReport",
    "GenerationStepMetric",
]

logger.debug("crudgen.generator loaded.")
