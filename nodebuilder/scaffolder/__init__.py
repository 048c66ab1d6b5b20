"""Node Builder scaffolder -- composes a project from template variants.

The bundled catalog (``templates/catalog.yaml`` plus one ``.j2`` file per
variant) is read once; each composition picks one variant per category,
resolves its parameters, renders it and merges the dependencies of every
selected variant.

Quick usage::

    from nodebuilder.scaffolder import (
        CompositionEngine,
        write_composition,
        write_package_json,
    )

    engine = CompositionEngine()
    result = engine.compose(
        {"db": "sqlite", "server": "express"},
        {"projectName": "demo", "port": "5000"},
    )
    await write_composition(result, "/tmp/demo")
    await write_package_json(result, "/tmp/demo", "demo")
"""

from nodebuilder.scaffolder.catalog import VariantCatalog, default_catalog
from nodebuilder.scaffolder.composer import (
    CompositionEngine,
    compose,
    merge_dependencies,
    selection_parameters,
)
from nodebuilder.scaffolder.errors import (
    CatalogError,
    DependencyConflictError,
    InvalidConstraintError,
    InvalidParameterError,
    MissingParameterError,
    NoVariantSelectedError,
    ParameterConflictError,
    ScaffoldError,
    UnknownVariantError,
    UnresolvedPlaceholderError,
)
from nodebuilder.scaffolder.install import install_commands, run_install
from nodebuilder.scaffolder.models import (
    CategorySpec,
    CompositionResult,
    Dependency,
    EscapeMode,
    ParameterSet,
    ParameterSource,
    ParameterSpec,
    RenderedFile,
    SelectionSet,
    TemplateDescriptor,
)
from nodebuilder.scaffolder.resolver import ParameterResolver, resolve_parameters
from nodebuilder.scaffolder.templates import TemplateRenderer, scan_placeholders
from nodebuilder.scaffolder.versions import merge_constraints, parse_constraint
from nodebuilder.scaffolder.writer import PACKAGE_JSON, write_composition, write_package_json

__all__ = [
    "PACKAGE_JSON",
    "CatalogError",
    "CategorySpec",
    "CompositionEngine",
    "CompositionResult",
    "Dependency",
    "DependencyConflictError",
    "EscapeMode",
    "InvalidConstraintError",
    "InvalidParameterError",
    "MissingParameterError",
    "NoVariantSelectedError",
    "ParameterConflictError",
    "ParameterResolver",
    "ParameterSet",
    "ParameterSource",
    "ParameterSpec",
    "RenderedFile",
    "ScaffoldError",
    "SelectionSet",
    "TemplateDescriptor",
    "TemplateRenderer",
    "UnknownVariantError",
    "UnresolvedPlaceholderError",
    "VariantCatalog",
    "compose",
    "default_catalog",
    "install_commands",
    "merge_constraints",
    "merge_dependencies",
    "parse_constraint",
    "resolve_parameters",
    "run_install",
    "scan_placeholders",
    "selection_parameters",
    "write_composition",
    "write_package_json",
]
