"""Command-line entry point.

Non-interactive front end for the composition engine::

    nodebuilder list
    nodebuilder create my-app --select db=postgresql --set port=5000
    nodebuilder create . --select db=sqlite --select lint=eslint --install
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from .config import Config, PackageManager
from .scaffolder import (
    PACKAGE_JSON,
    CompositionEngine,
    CompositionResult,
    ScaffoldError,
    SelectionSet,
    VariantCatalog,
    default_catalog,
    install_commands,
    run_install,
    write_composition,
    write_package_json,
)
from .utils import (
    console,
    create_progress,
    format_duration,
    parse_assignments,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodebuilder",
        description="Node Builder -- compose a Node.js backend project from templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  nodebuilder list\n"
            "  nodebuilder create my-app --select db=postgresql\n"
            "  nodebuilder create . --select db=sqlite --select server=fastify --set port=8080\n"
        ),
    )
    parser.add_argument(
        "--template-dir",
        default=None,
        help=(
            "Custom template tree containing catalog.yaml "
            "(default: $NB_TEMPLATE_DIR, else the bundled templates)"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List categories and their variants")

    create = sub.add_parser("create", help="Generate a project")
    create.add_argument("name", help="Project name (enter '.' for the current folder)")
    create.add_argument(
        "--select", "-s",
        action="append",
        default=[],
        metavar="CATEGORY=VARIANT",
        help="Choose a variant for a category (repeatable)",
    )
    create.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a template parameter (repeatable)",
    )
    create.add_argument(
        "--output", "-o",
        default=None,
        help="Parent directory for the project (default: $NB_OUTPUT_DIR, else .)",
    )
    create.add_argument(
        "--package-manager", "-p",
        default=None,
        choices=[pm.value for pm in PackageManager],
        help="Package manager used for installation (default: $NB_PACKAGE_MANAGER, else npm)",
    )
    create.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing files (or set NB_OVERWRITE=1)",
    )
    create.add_argument("--install", action="store_true", help="Install dependencies afterwards")
    create.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be generated without writing anything",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``nodebuilder`` / ``python -m nodebuilder.cli``."""
    args = build_parser().parse_args(argv)

    # Flags win over NB_* environment variables.
    try:
        env = Config.from_env()
    except (ValidationError, ValueError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    template_dir = Path(args.template_dir) if args.template_dir else env.template_dir

    try:
        catalog = (
            VariantCatalog.from_directory(template_dir)
            if template_dir is not None
            else default_catalog()
        )
    except ScaffoldError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if args.command == "list":
        _print_catalog(catalog)
        return

    try:
        config = Config(
            project_name=args.name,
            output_dir=Path(args.output) if args.output is not None else env.output_dir,
            package_manager=args.package_manager or env.package_manager,
            overwrite=args.overwrite or env.overwrite,
            template_dir=template_dir,
        )
        selection = SelectionSet.from_pairs(args.select)
        user_params = parse_assignments(args.set)
    except (ValidationError, ValueError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    started = time.monotonic()
    engine = CompositionEngine(catalog)
    try:
        result = engine.compose(selection, user_params, config.global_defaults())
    except ScaffoldError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    print_summary_table(result.selections, title="Selected variants")
    _print_dependencies(result)

    if args.dry_run:
        for rendered in result.files:
            target = config.project_root / rendered.path
            console.print(f"  [dim]would write[/dim] {escape(str(target))}")
        target = config.project_root / PACKAGE_JSON
        console.print(f"  [dim]would write[/dim] {escape(str(target))}")
        for command in install_commands(result, config.package_manager):
            console.print(f"  [dim]would run[/dim] {escape(' '.join(command))}")
        return

    written = asyncio.run(
        write_composition(result, config.project_root, overwrite=config.overwrite)
    )
    manifest = asyncio.run(
        write_package_json(
            result,
            config.project_root,
            config.resolved_project_name,
            overwrite=config.overwrite,
        )
    )
    skipped = len(result.files) - len(written)
    if manifest is None:
        skipped += 1
    if skipped:
        print_warning(f"{skipped} existing file(s) kept; use --overwrite to replace them")

    if args.install:
        with create_progress() as progress:
            progress.add_task("Installing dependencies...", total=None)
            ok = asyncio.run(run_install(result, config.project_root, config.package_manager))
        if not ok:
            print_error("Dependency installation failed.")
            sys.exit(1)

    print_success(
        f"Project {config.resolved_project_name} created in "
        f"{format_duration(time.monotonic() - started)}"
    )


def _print_catalog(catalog: VariantCatalog) -> None:
    table = Table(title="Template catalog", show_header=True, header_style="bold cyan")
    table.add_column("Category", no_wrap=True)
    table.add_column("Output")
    table.add_column("Required")
    table.add_column("Default")
    table.add_column("Variants")
    for spec in catalog.categories:
        table.add_row(
            spec.name,
            spec.output_path,
            "yes" if spec.required else "no",
            spec.default_variant or "-",
            ", ".join(catalog.list_variants(spec.name)),
        )
    console.print(table)


def _print_dependencies(result: CompositionResult) -> None:
    table = Table(title="Dependencies", show_header=True, header_style="bold cyan")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version")
    table.add_column("Kind", style="dim")
    for name, version in result.dependencies.items():
        table.add_row(name, version, "runtime")
    for name, version in result.dev_dependencies.items():
        table.add_row(name, version, "dev")
    console.print(table)


if __name__ == "__main__":
    main()
