"""Package-manager install plan for a composed project.

Turns the merged dependency maps of a ``CompositionResult`` into the argv
lists each supported package manager needs, and optionally runs them.
"""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape

from ..config import PackageManager
from ..utils import console, run_command
from .models import CompositionResult

# manager -> (install verb, dev flag)
_COMMANDS: dict[PackageManager, tuple[str, str]] = {
    PackageManager.NPM: ("install", "--save-dev"),
    PackageManager.YARN: ("add", "--dev"),
    PackageManager.PNPM: ("add", "--save-dev"),
    PackageManager.BUN: ("add", "--dev"),
}


def install_commands(
    result: CompositionResult,
    manager: PackageManager | str = PackageManager.NPM,
) -> list[list[str]]:
    """Return the install commands for *result*'s dependencies.

    Runtime dependencies are installed first, then devDependencies.  Empty
    groups produce no command.
    """
    manager = PackageManager(manager)
    verb, dev_flag = _COMMANDS[manager]
    commands: list[list[str]] = []
    if result.dependencies:
        commands.append(
            [manager.value, verb, *(_spec(n, v) for n, v in result.dependencies.items())]
        )
    if result.dev_dependencies:
        commands.append(
            [
                manager.value,
                verb,
                dev_flag,
                *(_spec(n, v) for n, v in result.dev_dependencies.items()),
            ]
        )
    return commands


async def run_install(
    result: CompositionResult,
    project_root: str | Path,
    manager: PackageManager | str = PackageManager.NPM,
    *,
    timeout: int = 600,
) -> bool:
    """Run every install command in *project_root*; stop at the first failure."""
    for command in install_commands(result, manager):
        console.print(f"  [dim]$ {escape(' '.join(command))}[/dim]")
        returncode, _stdout, stderr = await run_command(
            command, cwd=project_root, timeout=timeout
        )
        if returncode != 0:
            console.print(f"  [red]{command[0]} exited with {returncode}[/red]")
            if stderr:
                console.print(f"  [dim]{escape(stderr[:500])}[/dim]")
            return False
    return True


def _spec(name: str, version: str) -> str:
    return f"{name}@{version}"
