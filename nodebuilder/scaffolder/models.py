"""Pydantic v2 models for the scaffolding engine.

Defines the catalog metadata (descriptors, categories, dependencies) and the
per-run values produced while composing a project (selections, parameter sets,
rendered files and the final composition result).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class EscapeMode(str, Enum):
    """How a parameter value is escaped when substituted into a template."""
    NONE = "none"
    JS_STRING = "js_string"


class ParameterSource(str, Enum):
    """Which resolution layer supplied a parameter value."""
    USER = "user"
    VARIANT = "variant"
    GLOBAL = "global"


# ---------------------------------------------------------------------------
# Catalog metadata
# ---------------------------------------------------------------------------

class Dependency(BaseModel):
    """A package dependency declared by a template variant."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Package name on the npm registry")
    version: str = Field(default="latest", description="npm-style version constraint")
    dev: bool = Field(default=False, description="Whether this is a devDependency")


class ParameterSpec(BaseModel):
    """Metadata for one placeholder of a template."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    default: Optional[str] = Field(default=None, description="Variant-specific default value")
    validator: Optional[str] = Field(default=None, description="Name of a registered validator")
    escape: EscapeMode = Field(default=EscapeMode.NONE)
    description: str = Field(default="")


class CategorySpec(BaseModel):
    """An axis of mutually exclusive choice in the generated project."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    output_path: str = Field(..., min_length=1, description="Canonical output slot, relative path")
    default_variant: Optional[str] = Field(default=None)
    required: bool = Field(default=True)
    description: str = Field(default="")


class TemplateDescriptor(BaseModel):
    """Catalog entry for one variant of one category.

    ``parameters`` lists every placeholder found in ``source`` in order of
    first appearance; it is derived from the template, never hand-declared.
    """
    model_config = ConfigDict(frozen=True)

    category: str
    variant_id: str
    source: str = Field(..., description="Raw template text")
    source_path: Optional[Path] = Field(default=None)
    parameters: tuple[ParameterSpec, ...] = Field(default=())
    dependencies: tuple[Dependency, ...] = Field(default=())
    title: str = Field(default="")
    homepage: str = Field(default="")
    description: str = Field(default="")

    @property
    def key(self) -> tuple[str, str]:
        return (self.category, self.variant_id)

    @property
    def label(self) -> str:
        return f"{self.category}/{self.variant_id}"

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    def parameter(self, name: str) -> ParameterSpec | None:
        """Return the spec for *name*, or ``None`` if the template does not use it."""
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None


# ---------------------------------------------------------------------------
# Per-run values
# ---------------------------------------------------------------------------

class SelectionSet(BaseModel):
    """The user's chosen variant per category."""
    model_config = ConfigDict(frozen=True)

    choices: dict[str, str] = Field(default_factory=dict)

    @field_validator("choices")
    @classmethod
    def _no_blank_choices(cls, value: dict[str, str]) -> dict[str, str]:
        for category, variant in value.items():
            if not category.strip() or not variant.strip():
                raise ValueError(f"Blank selection: {category!r}={variant!r}")
        return value

    @classmethod
    def from_pairs(cls, pairs: Iterable[str]) -> "SelectionSet":
        """Parse ``category=variant`` strings (as given on the command line).

        A category may only be chosen once.
        """
        choices: dict[str, str] = {}
        for pair in pairs:
            category, sep, variant = pair.partition("=")
            if not sep:
                raise ValueError(f"Expected CATEGORY=VARIANT, got {pair!r}")
            category, variant = category.strip(), variant.strip()
            if category in choices:
                raise ValueError(f"Category {category!r} selected more than once")
            choices[category] = variant
        return cls(choices=choices)

    def get(self, category: str) -> str | None:
        return self.choices.get(category)


class ParameterSet(BaseModel):
    """Resolved parameter values for exactly one descriptor."""
    model_config = ConfigDict(frozen=True)

    category: str
    variant_id: str
    values: dict[str, str] = Field(default_factory=dict)
    sources: dict[str, ParameterSource] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def keys(self) -> Iterator[str]:
        return iter(self.values)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.values.get(name, default)

    def as_dict(self) -> dict[str, str]:
        return dict(self.values)


class RenderedFile(BaseModel):
    """A concrete output file: relative path plus final content."""
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    category: str
    variant_id: str


class CompositionResult(BaseModel):
    """Everything the external writer needs to materialise a project."""
    model_config = ConfigDict(frozen=True)

    files: tuple[RenderedFile, ...] = Field(default=())
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    directories: tuple[str, ...] = Field(default=())
    scripts: dict[str, str] = Field(default_factory=dict)
    selections: dict[str, str] = Field(default_factory=dict)

    def file_map(self) -> dict[str, str]:
        """Return a ``{path: content}`` mapping in output order."""
        return {f.path: f.content for f in self.files}

    def get(self, path: str) -> RenderedFile | None:
        for rendered in self.files:
            if rendered.path == path:
                return rendered
        return None

    def manifest_fragment(self) -> dict[str, dict[str, str]]:
        """The ``dependencies`` / ``devDependencies`` blocks of a package.json."""
        return {
            "dependencies": dict(self.dependencies),
            "devDependencies": dict(self.dev_dependencies),
        }

    def package_json(self, name: str, version: str = "1.0.0") -> dict[str, Any]:
        """A complete ``package.json`` document for a project called *name*."""
        return {
            "name": name,
            "version": version,
            "private": True,
            "main": "dist/main.js",
            "scripts": dict(self.scripts),
            **self.manifest_fragment(),
        }
