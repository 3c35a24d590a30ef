# File: crudgen/cli.py
"""
NexaFlow CrudGen - Command-Line Interface
==========================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Read-only CRUD (index + show) with yml routing
    python -m crudgen -m Resources/config/doctrine -e Post \\
        --bundle-path src/Acme/BlogBundle --bundle-namespace "Acme\\BlogBundle"

    # Full CRUD, annotation routes, replace the existing base controller
    python -m crudgen -m mapping.yaml -e "Blog\\Post" \\
        --bundle-path src/Acme/BlogBundle --bundle-namespace "Acme\\BlogBundle" \\
        --with-write --format annotation --route-prefix blog/post --overwrite

    # Validate only (no file output)
    python -m crudgen -m mapping.yaml -e Post --bundle-namespace "Acme\\BlogBundle" \\
        --validate-only

Exit codes:
    0 — success
    1 — validation error / unsupported entity
    2 — generation error (metadata resolution)
    3 — target already exists
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence, Tuple

from crudgen.errors import (
    MetadataLoadError,
    MetadataResolutionError,
    TargetAlreadyExistsError,
    UnsupportedEntityError,
)
from crudgen.metadata import MetadataRegistry
from crudgen.models import Bundle, ConfigFormat, EntityMetadata, GenerationConfig
from crudgen.utils import NAMESPACE_SEPARATOR, Timer, routing_basename
from crudgen.validators import ValidationResult, validate_metadata

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_TARGET_EXISTS: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root crudgen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "NexaFlow CrudGen — CRUD scaffolding from ORM mapping metadata.\n\n"
            "Generates controllers, Twig views, a functional test and routing "
            "configuration for one entity of a bundle."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -m mapping.yaml -e Post --bundle-path src/Acme/BlogBundle "
            "--bundle-namespace 'Acme\\BlogBundle'\n"
            "  %(prog)s -m mapping.yaml -e Post --bundle-namespace 'Acme\\BlogBundle' "
            "--validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"NexaFlow CrudGen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-m", "--mapping",
        type=str,
        required=True,
        metavar="PATH",
        help="Mapping document (YAML/JSON) or a directory of *.orm.* documents.",
    )
    parser.add_argument(
        "-e", "--entity",
        type=str,
        required=True,
        metavar="ENTITY",
        help="Entity name relative to the bundle's Entity namespace (e.g. Blog\\Post).",
    )

    # --- Bundle ---
    bundle_group = parser.add_argument_group("target bundle")
    bundle_group.add_argument(
        "--bundle-namespace",
        type=str,
        required=True,
        metavar="NS",
        help="PHP namespace of the bundle (e.g. Acme\\BlogBundle).",
    )
    bundle_group.add_argument(
        "--bundle-name",
        type=str,
        default=None,
        metavar="NAME",
        help="Bundle name (defaults to the namespace without separators).",
    )
    bundle_group.add_argument(
        "--bundle-path",
        type=str,
        default=None,
        metavar="DIR",
        help="Bundle root directory. Required unless --validate-only is set.",
    )

    # --- Generation options ---
    config_group = parser.add_argument_group("generation options")
    config_group.add_argument(
        "--format",
        type=str,
        default=ConfigFormat.YML.value,
        metavar="FORMAT",
        help="Routing format: yml, xml, php or annotation (unknown values fall back to yml).",
    )
    config_group.add_argument(
        "--route-prefix",
        type=str,
        default=None,
        metavar="PREFIX",
        help="URL prefix of the routes (defaults to the lowercased entity name).",
    )
    config_group.add_argument(
        "--with-write",
        action="store_true",
        default=False,
        help="Generate new/edit/delete actions in addition to index/show.",
    )
    config_group.add_argument(
        "--overwrite",
        action="store_true",
        default=False,
        help="Replace an existing base controller.",
    )
    config_group.add_argument(
        "--templates-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Use templates from DIR instead of the packaged ones.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the entity metadata without generating files.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _lookup_entity(
    registry: MetadataRegistry,
    bundle_namespace: str,
    entity: str,
) -> Tuple[str, EntityMetadata]:
    """
    Find the metadata of *entity*, first inside the bundle's Entity
    namespace, then under its own name.

    Raises:
        MetadataResolutionError: If neither name is known.
    """
    candidate: str = NAMESPACE_SEPARATOR.join(
        (bundle_namespace.strip(NAMESPACE_SEPARATOR), "Entity", entity)
    )
    metadata: Optional[EntityMetadata] = registry.find(candidate)
    if metadata is not None:
        return candidate, metadata
    return entity, registry.get(entity)


def _print_validation_report(entity_name: str, result: ValidationResult, elapsed: float) -> None:
    print(f"\n{'='*50}")
    print("  Metadata Validation Report")
    print(f"{'='*50}")
    print(f"  Entity:   {entity_name}")
    print(f"  Time:     {elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _run(args: argparse.Namespace) -> int:
    """Load, validate and (unless --validate-only) generate. Returns the exit code."""
    from crudgen.generator import CrudGenerator, GenerationReport

    mapping_path: Path = Path(args.mapping).resolve()
    entity: str = args.entity.strip(NAMESPACE_SEPARATOR)

    # Load
    try:
        registry: MetadataRegistry = MetadataRegistry.from_file(mapping_path)
    except (FileNotFoundError, MetadataLoadError) as exc:
        logger.error("Failed to load mapping: %s", exc)
        return EXIT_INPUT_ERROR

    try:
        entity_name, metadata = _lookup_entity(registry, args.bundle_namespace, entity)
    except MetadataResolutionError as exc:
        logger.error("%s", exc)
        return EXIT_GENERATION_ERROR

    # Validate
    with Timer("validation") as t:
        result: ValidationResult = validate_metadata(metadata, registry)

    if args.validate_only:
        _print_validation_report(entity_name, result, t.elapsed)
        return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR

    for warn in result.warnings:
        logger.warning("  ⚠ %s", warn)
    if not result.is_valid:
        for err in result.errors:
            logger.error("  ✗ %s", err)
        return EXIT_VALIDATION_ERROR

    # Generate
    bundle = Bundle(
        name=args.bundle_name or args.bundle_namespace.replace(NAMESPACE_SEPARATOR, ""),
        namespace=args.bundle_namespace,
        path=str(Path(args.bundle_path).resolve()),
    )
    config = GenerationConfig(
        format=args.format,
        route_prefix=(
            args.route_prefix if args.route_prefix is not None
            else routing_basename(entity)
        ),
        with_write_actions=args.with_write,
        force_overwrite=args.overwrite,
        templates_dir=args.templates_dir,
    )

    generator: CrudGenerator = CrudGenerator(registry)
    try:
        report: GenerationReport = generator.generate(bundle, entity, metadata, config)
    except UnsupportedEntityError as exc:
        logger.error("%s", exc)
        return EXIT_VALIDATION_ERROR
    except MetadataResolutionError as exc:
        logger.error("%s", exc)
        return EXIT_GENERATION_ERROR
    except TargetAlreadyExistsError as exc:
        logger.error("%s (use --overwrite to replace it)", exc)
        return EXIT_TARGET_EXISTS

    print(report.summary())
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)
    if args.quiet:
        logging.getLogger("crudgen").setLevel(logging.ERROR)

    if not args.validate_only and args.bundle_path is None:
        logger.error(
            "Bundle path is required for generation. "
            "Use --bundle-path or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Mapping: %s", args.mapping)
    logger.info("Entity:  %s", args.entity)
    logger.info("Bundle:  %s (%s)", args.bundle_namespace, args.bundle_path)

    exit_code: int = _run(args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Done.")
    else:
        logger.error("Failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_TARGET_EXISTS",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
