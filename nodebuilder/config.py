"""Node Builder configuration.

Centralised, typed configuration for one generation run.  All settings use
Pydantic v2 models so they can be validated at construction time and
filled from ``NB_*`` environment variables without boiler-plate.

Nothing here is process-wide state: a ``Config`` is built per invocation and
passed explicitly to whatever needs it.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PackageManager(str, Enum):
    """Package managers the generated project can be installed with."""
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"


class Config(BaseModel):
    """Settings for a single project generation run.

    ``defaults`` holds extra global parameter defaults shared by every
    template; ``project_name`` and ``package_manager`` are exposed to the
    templates as ``projectName`` and ``packageManager``.
    """

    project_name: str = Field(default=".", description="Project name, or '.' for the current folder")
    output_dir: Path = Field(default=Path("."))
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    overwrite: bool = Field(default=False, description="Replace files that already exist")
    template_dir: Optional[Path] = Field(
        default=None, description="Custom template tree; bundled templates when unset"
    )
    defaults: dict[str, str] = Field(default_factory=dict)

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        value = value.strip()
        if value != "." and len(value) < 3:
            raise ValueError("Project name should be at least 3 characters")
        return value

    # ------------------------------------------------------------------
    # Derived values (read-only properties)
    # ------------------------------------------------------------------

    @property
    def in_place(self) -> bool:
        """``True`` when generating into the output directory itself."""
        return self.project_name == "."

    @property
    def resolved_project_name(self) -> str:
        """The project name, with ``.`` replaced by the directory's name."""
        if self.in_place:
            return self.output_dir.resolve().name
        return self.project_name

    @property
    def project_root(self) -> Path:
        """Directory the generated files are written into."""
        if self.in_place:
            return self.output_dir
        return self.output_dir / self.project_name

    def global_defaults(self) -> dict[str, str]:
        """Run-wide template defaults derived from this configuration."""
        return {
            "projectName": self.resolved_project_name,
            "packageManager": self.package_manager.value,
            **self.defaults,
        }

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            NB_OUTPUT_DIR, NB_PACKAGE_MANAGER, NB_TEMPLATE_DIR, NB_OVERWRITE.

        The project name always comes from the caller.
        """
        template_dir = os.environ.get("NB_TEMPLATE_DIR")
        overwrite = os.environ.get("NB_OVERWRITE", "").strip().lower() in ("1", "true", "yes")
        return cls(
            output_dir=Path(os.environ.get("NB_OUTPUT_DIR", ".")),
            package_manager=PackageManager(os.environ.get("NB_PACKAGE_MANAGER", "npm")),
            template_dir=Path(template_dir) if template_dir else None,
            overwrite=overwrite,
        )
