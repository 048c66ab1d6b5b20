"""Exception hierarchy for the scaffolding engine.

Every failure the engine can report derives from ``ScaffoldError`` so that the
CLI can present any of them with a single ``except`` clause.  All errors are
raised synchronously and abort the whole composition; nothing is retried.
"""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for all scaffolding errors."""


class CatalogError(ScaffoldError):
    """Raised when the template catalog cannot be built.

    These are authoring bugs (bad template syntax, inconsistent
    ``catalog.yaml``) and are detected when the catalog is loaded, never at
    render time.
    """


class InvalidConstraintError(CatalogError):
    """Raised when a dependency version constraint cannot be parsed."""

    def __init__(self, constraint: str, reason: str) -> None:
        self.constraint = constraint
        self.reason = reason
        super().__init__(f"Invalid version constraint {constraint!r}: {reason}")


class UnknownVariantError(ScaffoldError):
    """Raised when no descriptor is registered for a (category, variant) pair."""

    def __init__(self, category: str, variant_id: str | None = None) -> None:
        self.category = category
        self.variant_id = variant_id
        if variant_id is None:
            message = f"Unknown category: {category!r}"
        else:
            message = f"Unknown variant {variant_id!r} for category {category!r}"
        super().__init__(message)


class MissingParameterError(ScaffoldError):
    """Raised when a required parameter has no user, variant or global value."""

    def __init__(self, parameter: str, category: str, variant_id: str) -> None:
        self.parameter = parameter
        self.category = category
        self.variant_id = variant_id
        super().__init__(
            f"Missing parameter {parameter!r} required by template {category}/{variant_id}"
        )


class InvalidParameterError(ScaffoldError):
    """Raised when a resolved parameter value fails its declared validator."""

    def __init__(
        self,
        parameter: str,
        value: str,
        validator: str,
        category: str,
        variant_id: str,
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.validator = validator
        self.category = category
        self.variant_id = variant_id
        super().__init__(
            f"Parameter {parameter!r}={value!r} for template {category}/{variant_id} "
            f"is not a valid {validator}"
        )


class UnresolvedPlaceholderError(ScaffoldError):
    """Raised when a template references placeholders absent from its parameter set."""

    def __init__(self, placeholders: list[str], category: str, variant_id: str) -> None:
        self.placeholders = placeholders
        self.category = category
        self.variant_id = variant_id
        names = ", ".join(placeholders)
        super().__init__(
            f"Template {category}/{variant_id} has unresolved placeholders: {names}"
        )


class NoVariantSelectedError(ScaffoldError):
    """Raised when a mandatory category has neither a selection nor a default."""

    def __init__(self, category: str, choices: list[str] | None = None) -> None:
        self.category = category
        self.choices = choices or []
        message = f"No variant selected for mandatory category {category!r}"
        if self.choices:
            message += f" (choose one of: {', '.join(self.choices)})"
        super().__init__(message)


class ParameterConflictError(ScaffoldError):
    """Raised when a shared parameter resolves to different values across templates."""

    def __init__(
        self,
        parameter: str,
        first: tuple[str, str],
        second: tuple[str, str],
    ) -> None:
        self.parameter = parameter
        self.first = first
        self.second = second
        super().__init__(
            f"Parameter {parameter!r} resolves to {first[1]!r} for category {first[0]!r} "
            f"but to {second[1]!r} for category {second[0]!r}"
        )


class DependencyConflictError(ScaffoldError):
    """Raised when two selected variants need incompatible versions of a package."""

    def __init__(
        self,
        package: str,
        first: tuple[str, str],
        second: tuple[str, str],
    ) -> None:
        # ``first`` / ``second`` are (constraint, origin) pairs.
        self.package = package
        self.first = first
        self.second = second
        super().__init__(
            f"Dependency conflict for {package!r}: {first[0]!r} (from {first[1]}) "
            f"is incompatible with {second[0]!r} (from {second[1]})"
        )
