# File: crudgen/__main__.py
"""
NexaFlow CrudGen — Module entry point.

Allows running the generator directly via::

    python -m crudgen --mapping mapping.yaml --entity Post \\
        --bundle-path src/Acme/BlogBundle --bundle-namespace "Acme\\BlogBundle"

This module simply delegates to the CLI entry point defined in ``crudgen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from crudgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
