"""Parameter resolution for template descriptors.

Each placeholder of a descriptor is resolved from, in order:

1. the explicit user-supplied value,
2. the variant-specific default declared in ``catalog.yaml``,
3. the global default shared by every template of the run.

A placeholder that none of the layers provides is a hard error; it is never
replaced by an empty string.  Resolved values are checked against the
parameter's validator when one is declared.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from urllib.parse import urlsplit

from .errors import CatalogError, InvalidParameterError, MissingParameterError
from .models import ParameterSet, ParameterSource, TemplateDescriptor

Validator = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Built-in validators
# ---------------------------------------------------------------------------

_DIGITS = re.compile(r"[0-9]+")
_ENV_VAR = re.compile(r"[A-Z_][A-Z0-9_]*")

PACKAGE_MANAGERS: tuple[str, ...] = ("npm", "yarn", "pnpm", "bun")


def is_digits(value: str) -> bool:
    return _DIGITS.fullmatch(value) is not None


def is_port(value: str) -> bool:
    return is_digits(value) and 1 <= int(value) <= 65535


def is_uri(value: str) -> bool:
    """Accept connection strings such as ``postgres://user:pw@host:5432/db``."""
    parts = urlsplit(value)
    return bool(parts.scheme) and bool(parts.netloc) and not any(c.isspace() for c in value)


def is_project_name(value: str) -> bool:
    """``.`` (the current directory) or a name of at least three characters."""
    if value == ".":
        return True
    return len(value) >= 3 and not any(c.isspace() for c in value)


def is_env_var(value: str) -> bool:
    return _ENV_VAR.fullmatch(value) is not None


def is_package_manager(value: str) -> bool:
    return value in PACKAGE_MANAGERS


BUILTIN_VALIDATORS: dict[str, Validator] = {
    "digits": is_digits,
    "port": is_port,
    "uri": is_uri,
    "project_name": is_project_name,
    "env_var": is_env_var,
    "package_manager": is_package_manager,
}


# ---------------------------------------------------------------------------
# ParameterResolver
# ---------------------------------------------------------------------------


class ParameterResolver:
    """Builds one validated ``ParameterSet`` per descriptor.

    Additional validators can be supplied at construction; they extend (and
    may override) the built-in set.
    """

    def __init__(self, validators: Mapping[str, Validator] | None = None) -> None:
        self.validators: dict[str, Validator] = dict(BUILTIN_VALIDATORS)
        if validators:
            self.validators.update(validators)

    def knows(self, validator: str) -> bool:
        return validator in self.validators

    def resolve(
        self,
        descriptor: TemplateDescriptor,
        user_params: Mapping[str, str],
        global_defaults: Mapping[str, str],
    ) -> ParameterSet:
        """Resolve every placeholder of *descriptor*.

        Raises:
            MissingParameterError: If a placeholder has no value in any layer.
            InvalidParameterError: If a value fails its declared validator.
        """
        values: dict[str, str] = {}
        sources: dict[str, ParameterSource] = {}

        for spec in descriptor.parameters:
            if spec.name in user_params:
                value, source = user_params[spec.name], ParameterSource.USER
            elif spec.default is not None:
                value, source = spec.default, ParameterSource.VARIANT
            elif spec.name in global_defaults:
                value, source = global_defaults[spec.name], ParameterSource.GLOBAL
            else:
                raise MissingParameterError(spec.name, descriptor.category, descriptor.variant_id)

            if not isinstance(value, str):
                raise InvalidParameterError(
                    spec.name, repr(value), "string", descriptor.category, descriptor.variant_id
                )

            if spec.validator is not None:
                check = self.validators.get(spec.validator)
                if check is None:
                    raise CatalogError(
                        f"Template {descriptor.label} uses unknown validator {spec.validator!r}"
                    )
                if not check(value):
                    raise InvalidParameterError(
                        spec.name,
                        value,
                        spec.validator,
                        descriptor.category,
                        descriptor.variant_id,
                    )

            values[spec.name] = value
            sources[spec.name] = source

        return ParameterSet(
            category=descriptor.category,
            variant_id=descriptor.variant_id,
            values=values,
            sources=sources,
        )


def resolve_parameters(
    descriptor: TemplateDescriptor,
    user_params: Mapping[str, str],
    global_defaults: Mapping[str, str],
) -> ParameterSet:
    """Resolve *descriptor*'s parameters with the built-in validators."""
    return ParameterResolver().resolve(descriptor, user_params, global_defaults)
