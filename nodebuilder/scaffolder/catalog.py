"""Variant catalog: the registry of template descriptors.

The catalog is built once, by scanning a template tree laid out as
``<category>/<variant>.<ext>.j2`` and reading the ``catalog.yaml`` manifest
that sits next to it.  Each descriptor's parameter list is derived from the
placeholders found in its template, so template content and metadata cannot
drift apart.  Any inconsistency is reported as ``CatalogError`` while the
catalog is being built, never later at render time.

After construction the catalog is read-only and may be shared between
concurrent generation runs.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CatalogError, UnknownVariantError
from .models import CategorySpec, Dependency, EscapeMode, ParameterSpec, TemplateDescriptor
from .resolver import BUILTIN_VALIDATORS, Validator
from .templates import scan_placeholders
from .versions import parse_constraint


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

CATALOG_FILE = "catalog.yaml"
TEMPLATE_SUFFIX = ".j2"


# ---------------------------------------------------------------------------
# catalog.yaml schema
# ---------------------------------------------------------------------------

class _ParameterEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default: Optional[str] = None
    validator: Optional[str] = None
    escape: Optional[EscapeMode] = None
    description: str = ""


class _VariantEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = ""
    homepage: str = ""
    description: str = ""
    parameters: dict[str, _ParameterEntry] = Field(default_factory=dict)
    dependencies: list[Dependency] = Field(default_factory=list)


class _CategoryEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    output: str
    default: Optional[str] = None
    required: bool = True
    description: str = ""
    variants: dict[str, _VariantEntry] = Field(default_factory=dict)


class _CatalogManifest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directories: list[str] = Field(default_factory=list)
    base_dependencies: list[Dependency] = Field(default_factory=list)
    scripts: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, _ParameterEntry] = Field(default_factory=dict)
    categories: dict[str, _CategoryEntry] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# VariantCatalog
# ---------------------------------------------------------------------------


class VariantCatalog:
    """Static registry mapping ``(category, variant_id)`` to a descriptor.

    Categories keep their declaration order, which is also the order in which
    the composition engine processes them.
    """

    def __init__(
        self,
        categories: Iterable[CategorySpec],
        descriptors: Iterable[TemplateDescriptor],
        *,
        global_defaults: Mapping[str, str] | None = None,
        base_dependencies: Iterable[Dependency] = (),
        directories: Iterable[str] = (),
        scripts: Mapping[str, str] | None = None,
    ) -> None:
        self._categories: dict[str, CategorySpec] = {}
        slots: dict[str, str] = {}
        for spec in categories:
            if spec.name in self._categories:
                raise CatalogError(f"Category {spec.name!r} declared twice")
            owner = slots.get(spec.output_path)
            if owner is not None:
                raise CatalogError(
                    f"Categories {owner!r} and {spec.name!r} share output path {spec.output_path!r}"
                )
            slots[spec.output_path] = spec.name
            self._categories[spec.name] = spec

        self._descriptors: dict[tuple[str, str], TemplateDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.category not in self._categories:
                raise CatalogError(
                    f"Template {descriptor.label} belongs to undeclared category "
                    f"{descriptor.category!r}"
                )
            if descriptor.key in self._descriptors:
                raise CatalogError(f"Template {descriptor.label} registered twice")
            for dependency in descriptor.dependencies:
                parse_constraint(dependency.version)
            self._descriptors[descriptor.key] = descriptor

        for spec in self._categories.values():
            if spec.default_variant is not None and (
                (spec.name, spec.default_variant) not in self._descriptors
            ):
                raise CatalogError(
                    f"Default variant {spec.default_variant!r} of category {spec.name!r} "
                    "has no template"
                )

        self._base_dependencies = tuple(base_dependencies)
        for dependency in self._base_dependencies:
            parse_constraint(dependency.version)
        self._global_defaults = dict(global_defaults or {})
        self._directories = tuple(directories)
        self._scripts = dict(scripts or {})

    # -- Construction from a template tree ---------------------------------

    @classmethod
    def from_directory(
        cls,
        template_dir: str | Path | None = None,
        *,
        validators: Mapping[str, Validator] | None = None,
    ) -> "VariantCatalog":
        """Build a catalog from *template_dir* (defaults to the bundled templates).

        Args:
            template_dir: Root of the template tree containing ``catalog.yaml``.
            validators: Extra validators the catalog may reference, in
                addition to the built-in ones.

        Raises:
            CatalogError: If the manifest or any template is inconsistent.
        """
        root = Path(template_dir) if template_dir is not None else _DEFAULT_TEMPLATE_DIR
        manifest = _load_manifest(root / CATALOG_FILE)
        known_validators: dict[str, Validator] = {**BUILTIN_VALIDATORS, **(validators or {})}

        for name, entry in manifest.parameters.items():
            _check_entry(name, entry, known_validators, label="catalog.yaml")

        files = _discover_templates(root, manifest)

        categories: list[CategorySpec] = []
        descriptors: list[TemplateDescriptor] = []
        for category_name, category in manifest.categories.items():
            categories.append(
                CategorySpec(
                    name=category_name,
                    output_path=category.output,
                    default_variant=category.default,
                    required=category.required,
                    description=category.description,
                )
            )
            found = files.get(category_name, {})
            missing = [v for v in category.variants if v not in found]
            if missing:
                raise CatalogError(
                    f"Category {category_name!r} declares variants without templates: "
                    f"{', '.join(missing)}"
                )
            ordered = list(category.variants) + sorted(
                v for v in found if v not in category.variants
            )
            for variant_id in ordered:
                descriptors.append(
                    _build_descriptor(
                        category_name,
                        variant_id,
                        found[variant_id],
                        category.variants.get(variant_id, _VariantEntry()),
                        manifest.parameters,
                        known_validators,
                    )
                )

        global_defaults = {
            name: entry.default
            for name, entry in manifest.parameters.items()
            if entry.default is not None
        }
        return cls(
            categories,
            descriptors,
            global_defaults=global_defaults,
            base_dependencies=manifest.base_dependencies,
            directories=manifest.directories,
            scripts=manifest.scripts,
        )

    # -- Discovery ---------------------------------------------------------

    @property
    def categories(self) -> tuple[CategorySpec, ...]:
        """Category specs in processing order."""
        return tuple(self._categories.values())

    def category(self, name: str) -> CategorySpec:
        try:
            return self._categories[name]
        except KeyError:
            raise UnknownVariantError(name) from None

    def list_categories(self) -> frozenset[str]:
        return frozenset(self._categories)

    def list_variants(self, category: str) -> list[str]:
        """Variant ids of *category*, in catalog order."""
        self.category(category)
        return [variant for (cat, variant) in self._descriptors if cat == category]

    def lookup(self, category: str, variant_id: str) -> TemplateDescriptor:
        """Return the descriptor registered for ``(category, variant_id)``.

        Raises:
            UnknownVariantError: If the pair is not registered.
        """
        try:
            return self._descriptors[(category, variant_id)]
        except KeyError:
            self.category(category)
            raise UnknownVariantError(category, variant_id) from None

    def descriptors(self) -> Iterator[TemplateDescriptor]:
        return iter(self._descriptors.values())

    @property
    def global_defaults(self) -> dict[str, str]:
        return dict(self._global_defaults)

    @property
    def base_dependencies(self) -> tuple[Dependency, ...]:
        return self._base_dependencies

    @property
    def directories(self) -> tuple[str, ...]:
        return self._directories

    @property
    def scripts(self) -> dict[str, str]:
        """npm scripts for the generated package.json."""
        return dict(self._scripts)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors


@functools.lru_cache(maxsize=1)
def default_catalog() -> VariantCatalog:
    """Return the catalog of bundled templates, built once per process."""
    return VariantCatalog.from_directory(_DEFAULT_TEMPLATE_DIR)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_manifest(path: Path) -> _CatalogManifest:
    if not path.is_file():
        raise CatalogError(f"Catalog manifest not found: {path}")
    try:
        raw: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise CatalogError(f"Catalog manifest {path} is not valid YAML: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog manifest {path} must contain a mapping")
    try:
        return _CatalogManifest.model_validate(raw)
    except ValidationError as exc:
        raise CatalogError(f"Catalog manifest {path} is invalid:\n{exc}") from exc


def _discover_templates(
    root: Path, manifest: _CatalogManifest
) -> dict[str, dict[str, Path]]:
    """Map ``category -> variant -> template path`` for every ``*.j2`` file."""
    found: dict[str, dict[str, Path]] = {}
    if not root.is_dir():
        raise CatalogError(f"Template directory not found: {root}")

    for category_dir in sorted(root.iterdir()):
        if not category_dir.is_dir() or category_dir.name.startswith((".", "_")):
            continue
        category = category_dir.name
        if category not in manifest.categories:
            raise CatalogError(f"Template directory {category!r} is not declared in {CATALOG_FILE}")
        variants: dict[str, Path] = {}
        for template_file in sorted(category_dir.glob(f"*{TEMPLATE_SUFFIX}")):
            variant_id = template_file.name.split(".", 1)[0]
            if variant_id in variants:
                raise CatalogError(
                    f"Variant {category}/{variant_id} has more than one template: "
                    f"{variants[variant_id].name}, {template_file.name}"
                )
            variants[variant_id] = template_file
        found[category] = variants
    return found


def _build_descriptor(
    category: str,
    variant_id: str,
    path: Path,
    entry: _VariantEntry,
    shared: Mapping[str, _ParameterEntry],
    validators: Mapping[str, Validator],
) -> TemplateDescriptor:
    label = f"{category}/{variant_id}"
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogError(f"Cannot read template {path}: {exc}") from exc
    placeholders = scan_placeholders(source, label=label)

    stray = [name for name in entry.parameters if name not in placeholders]
    if stray:
        raise CatalogError(
            f"Template {label} annotates parameters it never uses: {', '.join(stray)}"
        )

    specs: list[ParameterSpec] = []
    for name in placeholders:
        own = entry.parameters.get(name, _ParameterEntry())
        common = shared.get(name, _ParameterEntry())
        effective = _ParameterEntry(
            default=own.default,
            validator=own.validator or common.validator,
            escape=own.escape or common.escape or EscapeMode.NONE,
            description=own.description or common.description,
        )
        _check_entry(name, effective, validators, label=label)
        specs.append(
            ParameterSpec(
                name=name,
                default=effective.default,
                validator=effective.validator,
                escape=effective.escape,
                description=effective.description,
            )
        )

    return TemplateDescriptor(
        category=category,
        variant_id=variant_id,
        source=source,
        source_path=path,
        parameters=tuple(specs),
        dependencies=tuple(entry.dependencies),
        title=entry.title or variant_id,
        homepage=entry.homepage,
        description=entry.description,
    )


def _check_entry(
    name: str,
    entry: _ParameterEntry,
    validators: Mapping[str, Validator],
    *,
    label: str,
) -> None:
    """Reject unknown validators and defaults that fail their own validator."""
    if entry.validator is None:
        return
    check = validators.get(entry.validator)
    if check is None:
        raise CatalogError(f"{label}: parameter {name!r} uses unknown validator {entry.validator!r}")
    if entry.default is not None and not check(entry.default):
        raise CatalogError(
            f"{label}: default {entry.default!r} of parameter {name!r} "
            f"is not a valid {entry.validator}"
        )
