"""npm-style version constraints.

Constraints are parsed into intervals over :class:`packaging.version.Version`
so that two declarations of the same package can be intersected.  The subset
of the npm range grammar used by template catalogs is supported:

* ``latest``, ``*``, ``x`` and the empty string (unbounded)
* exact versions: ``1.2.3`` / ``=1.2.3``
* caret ranges: ``^1.2.3``, ``^0.2``, ``^1``
* tilde ranges: ``~1.2.3``, ``~1.2``, ``~1``
* x-ranges: ``1.x``, ``1.2.*``, ``1``
* comparator sets joined by whitespace: ``>=1.0.0 <2.0.0``

Alternatives (``||``), hyphen ranges and dist-tags other than ``latest`` are
rejected with :class:`InvalidConstraintError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from packaging.version import InvalidVersion, Version

from .errors import InvalidConstraintError


_UNBOUNDED_TOKENS = frozenset({"", "*", "x", "X", "latest"})
_WILDCARDS = frozenset({"*", "x", "X"})
_OPERATORS = (">=", "<=", ">", "<", "=")
_OPERATOR_GAP = re.compile(r"(>=|<=|>|<|=|\^|~)\s+")


# ---------------------------------------------------------------------------
# Interval model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bound:
    """One end of a version interval."""

    version: Version
    inclusive: bool


@dataclass(frozen=True)
class VersionRange:
    """A parsed constraint: ``raw`` text plus its lower/upper bounds.

    ``None`` bounds are unbounded.
    """

    raw: str
    lower: Optional[Bound] = None
    upper: Optional[Bound] = None

    @property
    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower.version > self.upper.version:
            return True
        if self.lower.version == self.upper.version:
            return not (self.lower.inclusive and self.upper.inclusive)
        return False

    def contains_range(self, other: "VersionRange") -> bool:
        """Return ``True`` if every version allowed by *other* is allowed here."""
        return _lower_at_most(self.lower, other.lower) and _upper_at_least(
            self.upper, other.upper
        )

    def intersect(self, other: "VersionRange") -> "VersionRange":
        lower = _tighter_lower(self.lower, other.lower)
        upper = _tighter_upper(self.upper, other.upper)
        return VersionRange(raw=format_range(lower, upper), lower=lower, upper=upper)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_constraint(raw: str) -> VersionRange:
    """Parse an npm-style constraint into a :class:`VersionRange`.

    Raises:
        InvalidConstraintError: For unsupported syntax, malformed versions or
            ranges that admit no version at all.
    """
    text = raw.strip()
    if text in _UNBOUNDED_TOKENS:
        return VersionRange(raw=raw)
    if "||" in text:
        raise InvalidConstraintError(raw, "alternative ranges (||) are not supported")
    if " - " in text:
        raise InvalidConstraintError(raw, "hyphen ranges are not supported")

    text = _OPERATOR_GAP.sub(r"\1", text)
    lower: Optional[Bound] = None
    upper: Optional[Bound] = None
    for token in text.split():
        tok_lower, tok_upper = _parse_token(token, raw)
        lower = _tighter_lower(lower, tok_lower)
        upper = _tighter_upper(upper, tok_upper)

    result = VersionRange(raw=raw, lower=lower, upper=upper)
    if result.is_empty:
        raise InvalidConstraintError(raw, "range does not admit any version")
    return result


def merge_constraints(first: str, second: str) -> str | None:
    """Combine two constraints declared for the same package.

    Returns the narrower of the two when one contains the other, a normalised
    comparator range when they only partially overlap, and ``None`` when no
    version satisfies both.
    """
    if first.strip() == second.strip():
        return first
    a = parse_constraint(first)
    b = parse_constraint(second)
    if a.contains_range(b):
        return b.raw
    if b.contains_range(a):
        return a.raw
    overlap = a.intersect(b)
    if overlap.is_empty:
        return None
    return overlap.raw


def format_range(lower: Optional[Bound], upper: Optional[Bound]) -> str:
    """Render bounds back into npm comparator syntax."""
    if lower is None and upper is None:
        return "*"
    if (
        lower is not None
        and upper is not None
        and lower.version == upper.version
        and lower.inclusive
        and upper.inclusive
    ):
        return str(lower.version)
    parts: list[str] = []
    if lower is not None:
        parts.append(f"{'>=' if lower.inclusive else '>'}{lower.version}")
    if upper is not None:
        parts.append(f"{'<=' if upper.inclusive else '<'}{upper.version}")
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Token parsing
# ---------------------------------------------------------------------------

def _parse_token(token: str, raw: str) -> tuple[Optional[Bound], Optional[Bound]]:
    if token.startswith("^"):
        return _caret(token[1:], raw)
    if token.startswith("~"):
        return _tilde(token[1:], raw)

    op, version_text = _split_operator(token)
    parts, pre = _parse_parts(version_text, raw)

    if op == "=":
        if not parts:
            return None, None
        if len(parts) == 3:
            exact = _version(parts, pre, raw)
            return Bound(exact, True), Bound(exact, True)
        return (
            Bound(_version(_pad(parts), pre, raw), True),
            Bound(_version(_bump(parts), None, raw), False),
        )
    if not parts:
        raise InvalidConstraintError(raw, f"comparator {op!r} needs a version")
    if op == ">=":
        return Bound(_version(_pad(parts), pre, raw), True), None
    if op == ">":
        if len(parts) == 3:
            return Bound(_version(parts, pre, raw), False), None
        return Bound(_version(_bump(parts), None, raw), True), None
    if op == "<":
        return None, Bound(_version(_pad(parts), pre, raw), False)
    # op == "<="
    if len(parts) == 3:
        return None, Bound(_version(parts, pre, raw), True)
    return None, Bound(_version(_bump(parts), None, raw), False)


def _split_operator(token: str) -> tuple[str, str]:
    """Split a comparator such as ``>=v1.2`` into ``(">=", "1.2")``."""
    for op in _OPERATORS:
        if token.startswith(op):
            rest = token[len(op):]
            break
    else:
        op, rest = "=", token
    return op, rest.removeprefix("v")


def _caret(text: str, raw: str) -> tuple[Optional[Bound], Optional[Bound]]:
    parts, pre = _parse_parts(text, raw)
    if not parts:
        return None, None
    major = parts[0]
    minor = parts[1] if len(parts) > 1 else None
    patch = parts[2] if len(parts) > 2 else None

    if major != 0 or minor is None:
        upper = [major + 1, 0, 0]
    elif minor != 0 or patch is None:
        upper = [0, minor + 1, 0]
    else:
        upper = [0, 0, patch + 1]
    return (
        Bound(_version(_pad(parts), pre, raw), True),
        Bound(_version(upper, None, raw), False),
    )


def _tilde(text: str, raw: str) -> tuple[Optional[Bound], Optional[Bound]]:
    parts, pre = _parse_parts(text, raw)
    if not parts:
        return None, None
    if len(parts) == 1:
        upper = [parts[0] + 1, 0, 0]
    else:
        upper = [parts[0], parts[1] + 1, 0]
    return (
        Bound(_version(_pad(parts), pre, raw), True),
        Bound(_version(upper, None, raw), False),
    )


def _parse_parts(text: str, raw: str) -> tuple[list[int], Optional[str]]:
    """Split ``1.2.3-beta.1`` into ``([1, 2, 3], "beta.1")``.

    Wildcard components end the list: ``1.x`` gives ``[1]``.
    """
    text = text.lstrip("v=")
    text = text.split("+", 1)[0]
    core, _, pre = text.partition("-")
    if not core:
        raise InvalidConstraintError(raw, "missing version")
    pieces = core.split(".")
    if len(pieces) > 3:
        raise InvalidConstraintError(raw, f"too many version components in {core!r}")

    parts: list[int] = []
    wildcard_seen = False
    for piece in pieces:
        if piece in _WILDCARDS:
            wildcard_seen = True
            continue
        if wildcard_seen or not piece.isdigit():
            raise InvalidConstraintError(raw, f"bad version component {piece!r}")
        parts.append(int(piece))
    if pre and len(parts) < 3:
        raise InvalidConstraintError(raw, "prerelease tags need a full version")
    return parts, pre or None


def _version(parts: list[int], pre: Optional[str], raw: str) -> Version:
    text = ".".join(str(p) for p in parts)
    if pre:
        text = f"{text}-{pre}"
    try:
        return Version(text)
    except InvalidVersion as exc:
        raise InvalidConstraintError(raw, str(exc)) from exc


def _pad(parts: list[int]) -> list[int]:
    return (parts + [0, 0, 0])[:3]


def _bump(parts: list[int]) -> list[int]:
    """Smallest version above every version matching the partial *parts*."""
    bumped = parts[:-1] + [parts[-1] + 1]
    return _pad(bumped)


# ---------------------------------------------------------------------------
# Bound comparison
# ---------------------------------------------------------------------------

def _lower_at_most(a: Optional[Bound], b: Optional[Bound]) -> bool:
    if a is None:
        return True
    if b is None:
        return False
    if a.version != b.version:
        return a.version < b.version
    return a.inclusive or not b.inclusive


def _upper_at_least(a: Optional[Bound], b: Optional[Bound]) -> bool:
    if a is None:
        return True
    if b is None:
        return False
    if a.version != b.version:
        return a.version > b.version
    return a.inclusive or not b.inclusive


def _tighter_lower(a: Optional[Bound], b: Optional[Bound]) -> Optional[Bound]:
    if a is None:
        return b
    if b is None:
        return a
    if a.version != b.version:
        return a if a.version > b.version else b
    return a if not a.inclusive else b


def _tighter_upper(a: Optional[Bound], b: Optional[Bound]) -> Optional[Bound]:
    if a is None:
        return b
    if b is None:
        return a
    if a.version != b.version:
        return a if a.version < b.version else b
    return a if not a.inclusive else b
