"""Writes a ``CompositionResult`` to disk.

The composition engine only returns data; this module is the thin file
writer used by the CLI.  Blocking file-system work runs in a worker thread so
the writer can be awaited from the same event loop that drives the installer.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.markup import escape

from ..utils import console
from .models import CompositionResult

PACKAGE_JSON = "package.json"


async def write_composition(
    result: CompositionResult,
    project_root: str | Path,
    *,
    overwrite: bool = False,
) -> list[Path]:
    """Create the project directories and write every rendered file.

    Existing files are left untouched unless *overwrite* is set.

    Args:
        result: The composition to materialise.
        project_root: Directory the relative output paths are resolved against.
        overwrite: Replace files that already exist.

    Returns:
        The paths that were written, in output order.
    """
    root = Path(project_root)
    await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)

    for directory in result.directories:
        await asyncio.to_thread(_make_dir, root / directory)

    written: list[Path] = []
    for rendered in result.files:
        target = root / rendered.path
        if target.exists() and not overwrite:
            console.print(f"  [yellow]Skipping existing file {escape(rendered.path)}[/yellow]")
            continue
        await asyncio.to_thread(_write_file, target, rendered.content)
        console.print(f"  [green]+[/green] {escape(rendered.path)}")
        written.append(target)
    return written


async def write_package_json(
    result: CompositionResult,
    project_root: str | Path,
    project_name: str,
    *,
    overwrite: bool = False,
) -> Path | None:
    """Write the project's ``package.json`` from the merged dependencies.

    Returns:
        The written path, or ``None`` when an existing file was kept.
    """
    target = Path(project_root) / PACKAGE_JSON
    if target.exists() and not overwrite:
        console.print(f"  [yellow]Skipping existing file {PACKAGE_JSON}[/yellow]")
        return None
    content = json.dumps(result.package_json(project_name), indent=2) + "\n"
    await asyncio.to_thread(_write_file, target, content)
    console.print(f"  [green]+[/green] {PACKAGE_JSON}")
    return target


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _make_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
