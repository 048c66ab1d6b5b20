"""Jinja2 placeholder rendering for project scaffolding.

Templates are plain source files containing ``{{ name }}`` placeholders.  The
template language is restricted on purpose: blocks, filters, attribute access
and literal expressions are rejected when the template is scanned, so a
template can only ever substitute parameter values verbatim (optionally
escaped for a JavaScript string literal).

Compiled ``Template`` objects are cached by source hash so repeated renders of
the same catalog entry skip the parse phase.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict

from jinja2 import (
    Environment,
    StrictUndefined,
    Template,
    TemplateSyntaxError,
    UndefinedError,
    nodes,
)

from .errors import CatalogError, UnresolvedPlaceholderError
from .models import EscapeMode, ParameterSet, TemplateDescriptor


_CACHE_MAX_SIZE = 256

_JS_STRING_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "`": "\\`",
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def create_environment() -> Environment:
    """Return the Jinja2 environment shared by scanning and rendering."""
    return Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


_SCAN_ENV = create_environment()


# ---------------------------------------------------------------------------
# Placeholder scanning
# ---------------------------------------------------------------------------

def scan_placeholders(
    source: str,
    env: Environment | None = None,
    *,
    label: str = "<template>",
) -> list[str]:
    """Return placeholder names in *source*, in order of first appearance.

    Raises:
        CatalogError: If the source does not parse, or uses anything other
            than plain ``{{ name }}`` placeholders.
    """
    env = env or _SCAN_ENV
    try:
        ast = env.parse(source)
    except TemplateSyntaxError as exc:
        raise CatalogError(
            f"Template {label} has invalid syntax on line {exc.lineno}: {exc.message}"
        ) from exc

    names: list[str] = []
    for node in ast.body:
        if not isinstance(node, nodes.Output):
            raise CatalogError(
                f"Template {label} uses a {type(node).__name__} block; "
                "only {{ name }} placeholders are allowed"
            )
        for child in node.nodes:
            if isinstance(child, nodes.TemplateData):
                continue
            if isinstance(child, nodes.Name) and child.ctx == "load":
                if child.name not in names:
                    names.append(child.name)
                continue
            raise CatalogError(
                f"Template {label} uses a {type(child).__name__} expression; "
                "only {{ name }} placeholders are allowed"
            )
    return names


def escape_value(value: str, mode: EscapeMode) -> str:
    """Escape *value* for the syntax around its placeholder."""
    if mode is EscapeMode.JS_STRING:
        return "".join(_JS_STRING_ESCAPES.get(ch, ch) for ch in value)
    return value


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders catalog descriptors with their resolved parameter sets.

    Rendering is pure: the same descriptor and parameter set always produce
    byte-identical output.  A renderer may be shared between threads.
    """

    def __init__(self) -> None:
        self.env = create_environment()
        self._cache: OrderedDict[str, Template] = OrderedDict()
        self._lock = threading.Lock()

    def render(self, descriptor: TemplateDescriptor, parameters: ParameterSet) -> str:
        """Substitute *parameters* into *descriptor*'s source.

        Raises:
            UnresolvedPlaceholderError: If the source contains a placeholder
                with no value in *parameters*.
            CatalogError: If the descriptor declares a parameter its source
                never uses.
        """
        placeholders = scan_placeholders(descriptor.source, self.env, label=descriptor.label)

        unused = [name for name in descriptor.parameter_names if name not in placeholders]
        if unused:
            raise CatalogError(
                f"Template {descriptor.label} declares parameters it never uses: "
                f"{', '.join(unused)}"
            )

        missing = [name for name in placeholders if name not in parameters]
        if missing:
            raise UnresolvedPlaceholderError(missing, descriptor.category, descriptor.variant_id)

        context: dict[str, str] = {}
        for name in placeholders:
            spec = descriptor.parameter(name)
            mode = spec.escape if spec is not None else EscapeMode.NONE
            context[name] = escape_value(parameters[name], mode)

        template = self._compile(descriptor.source)
        try:
            return template.render(**context)
        except UndefinedError as exc:
            raise UnresolvedPlaceholderError(
                [str(exc)], descriptor.category, descriptor.variant_id
            ) from exc

    def _compile(self, source: str) -> Template:
        """Return a compiled ``Template`` from cache or compile and cache it."""
        key = hashlib.sha256(source.encode("utf-8")).hexdigest()
        with self._lock:
            template = self._cache.get(key)
            if template is not None:
                self._cache.move_to_end(key)
                return template
        template = self.env.from_string(source)
        with self._lock:
            self._cache[key] = template
            if len(self._cache) > _CACHE_MAX_SIZE:
                self._cache.popitem(last=False)
        return template
