"""Main composition orchestrator.

Takes a ``SelectionSet`` and user parameters, picks exactly one variant per
category from the ``VariantCatalog``, resolves and renders each template, and
returns a ``CompositionResult`` holding the ordered file list and the merged
dependency manifest fragment.

The engine is a pure request/response pipeline: it never touches the file
system, and every error aborts the whole composition.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .catalog import VariantCatalog, default_catalog
from .errors import DependencyConflictError, NoVariantSelectedError, ParameterConflictError
from .models import (
    CompositionResult,
    Dependency,
    ParameterSet,
    RenderedFile,
    SelectionSet,
    TemplateDescriptor,
)
from .resolver import ParameterResolver
from .templates import TemplateRenderer
from .versions import merge_constraints


BASE_ORIGIN = "base"


# ---------------------------------------------------------------------------
# Composition engine
# ---------------------------------------------------------------------------


class CompositionEngine:
    """Selects, resolves, renders and merges one variant per category.

    The engine holds no per-run state, so one instance (and its catalog) can
    serve any number of runs, including concurrent ones.
    """

    def __init__(
        self,
        catalog: VariantCatalog | None = None,
        *,
        resolver: ParameterResolver | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else default_catalog()
        self.resolver = resolver or ParameterResolver()
        self.renderer = renderer or TemplateRenderer()

    # -- Public API --------------------------------------------------------

    def compose(
        self,
        selection: SelectionSet | Mapping[str, str],
        user_params: Mapping[str, str] | None = None,
        global_defaults: Mapping[str, str] | None = None,
    ) -> CompositionResult:
        """Compose a project from *selection*.

        Args:
            selection: Chosen variant per category.  Categories left out fall
                back to their default variant, or are skipped when optional.
            user_params: Flat parameter values supplied by the user.
            global_defaults: Run-wide defaults shared by every template.

        Returns:
            The rendered files in category order plus the merged dependencies.
        """
        if not isinstance(selection, SelectionSet):
            selection = SelectionSet(choices=dict(selection))
        user_params = dict(user_params or {})

        descriptors = self.select(selection)
        global_layer = self._global_layer(descriptors, global_defaults)

        files: list[RenderedFile] = []
        seen: dict[str, tuple[str, str]] = {}
        for descriptor in descriptors:
            parameters = self.resolver.resolve(descriptor, user_params, global_layer)
            _check_shared_parameters(parameters, seen)
            content = self.renderer.render(descriptor, parameters)
            slot = self.catalog.category(descriptor.category).output_path
            files.append(
                RenderedFile(
                    path=slot,
                    content=content,
                    category=descriptor.category,
                    variant_id=descriptor.variant_id,
                )
            )

        declarations: list[tuple[str, Dependency]] = [
            (BASE_ORIGIN, dependency) for dependency in self.catalog.base_dependencies
        ]
        for descriptor in descriptors:
            declarations.extend((descriptor.category, d) for d in descriptor.dependencies)
        dependencies, dev_dependencies = merge_dependencies(declarations)

        return CompositionResult(
            files=tuple(files),
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            directories=self.catalog.directories,
            scripts=self.catalog.scripts,
            selections={d.category: d.variant_id for d in descriptors},
        )

    def select(self, selection: SelectionSet) -> list[TemplateDescriptor]:
        """Resolve *selection* to one descriptor per category, in catalog order.

        Raises:
            UnknownVariantError: If the selection names an unknown category or
                variant.
            NoVariantSelectedError: If a mandatory category has neither a
                selection nor a default.
        """
        for category, variant_id in selection.choices.items():
            self.catalog.lookup(category, variant_id)

        chosen: list[TemplateDescriptor] = []
        for spec in self.catalog.categories:
            variant_id = selection.get(spec.name) or spec.default_variant
            if variant_id is None:
                if spec.required:
                    raise NoVariantSelectedError(spec.name, self.catalog.list_variants(spec.name))
                continue
            chosen.append(self.catalog.lookup(spec.name, variant_id))
        return chosen

    # -- Internal ----------------------------------------------------------

    def _global_layer(
        self,
        descriptors: list[TemplateDescriptor],
        global_defaults: Mapping[str, str] | None,
    ) -> dict[str, str]:
        """Catalog defaults < caller defaults < values derived from the selection."""
        layer = self.catalog.global_defaults
        layer.update(global_defaults or {})
        for descriptor in descriptors:
            layer.update(selection_parameters(descriptor))
        return layer


def compose(
    selection: SelectionSet | Mapping[str, str],
    user_params: Mapping[str, str] | None = None,
    global_defaults: Mapping[str, str] | None = None,
    *,
    catalog: VariantCatalog | None = None,
) -> CompositionResult:
    """Compose with a throwaway engine over *catalog* (bundled templates by default)."""
    return CompositionEngine(catalog).compose(selection, user_params, global_defaults)


def selection_parameters(descriptor: TemplateDescriptor) -> dict[str, str]:
    """Parameters every template can use to refer to a selected variant.

    E.g. selecting ``db=postgresql`` yields ``dbVariant``, ``dbTitle`` and
    ``dbHomepage``.
    """
    prefix = descriptor.category
    return {
        f"{prefix}Variant": descriptor.variant_id,
        f"{prefix}Title": descriptor.title or descriptor.variant_id,
        f"{prefix}Homepage": descriptor.homepage,
    }


# ---------------------------------------------------------------------------
# Dependency merging
# ---------------------------------------------------------------------------


@dataclass
class _Merged:
    version: str
    dev: bool
    origins: list[str] = field(default_factory=list)


def merge_dependencies(
    declarations: Iterable[tuple[str, Dependency]],
) -> tuple[dict[str, str], dict[str, str]]:
    """Merge ``(origin, dependency)`` declarations keyed by package name.

    Constraints for the same package are narrowed; a package is a
    devDependency only if every declaration says so.

    Returns:
        ``(dependencies, dev_dependencies)``, each sorted by package name.

    Raises:
        DependencyConflictError: If two constraints admit no common version.
    """
    merged: dict[str, _Merged] = {}
    for origin, dependency in declarations:
        current = merged.get(dependency.name)
        if current is None:
            merged[dependency.name] = _Merged(dependency.version, dependency.dev, [origin])
            continue
        combined = merge_constraints(current.version, dependency.version)
        if combined is None:
            raise DependencyConflictError(
                dependency.name,
                (current.version, ", ".join(current.origins)),
                (dependency.version, origin),
            )
        current.version = combined
        current.dev = current.dev and dependency.dev
        if origin not in current.origins:
            current.origins.append(origin)

    dependencies = {n: m.version for n, m in sorted(merged.items()) if not m.dev}
    dev_dependencies = {n: m.version for n, m in sorted(merged.items()) if m.dev}
    return dependencies, dev_dependencies


def _check_shared_parameters(
    parameters: ParameterSet,
    seen: dict[str, tuple[str, str]],
) -> None:
    """A parameter used by several templates must resolve identically in all of them."""
    for name, value in parameters.values.items():
        previous = seen.get(name)
        if previous is None:
            seen[name] = (parameters.category, value)
        elif previous[1] != value:
            raise ParameterConflictError(name, previous, (parameters.category, value))
