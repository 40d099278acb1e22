"""Parser/stringifier contract shared by latches and latch sets.

A :class:`LatchFormat` describes how a permission string maps onto named
parts and back. A :class:`HandlerBundle` is the mutable table of handler
functions that a :class:`~latch.latch_set.LatchSet` shares, by reference,
with every latch it holds. Replacing a slot on the bundle is therefore
visible to all latches that adopted it.

Handler slots
-------------
- ``from_string`` -- ``(str) -> Mapping | None``; ``None`` means no match.
- ``to_string``   -- ``(Mapping) -> str``.
- ``to_object``   -- ``(Mapping) -> dict``; the structured view (identity).
- ``mask_ignore`` -- values treated as wildcards when masking.

Example
-------
::

    fmt = RegexFormat(r"^role:(?P<role>.+)$", "role:{role}")
    bundle = HandlerBundle.from_format(fmt)
    bundle.from_string("role:owner")   # {"role": "owner"}
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from latch.errors import UnknownHandlerError

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

Parser = Callable[[str], Mapping[str, Any] | re.Match[str] | None]
Stringifier = Callable[[Mapping[str, Any]], str]
ObjectView = Callable[[Mapping[str, Any]], dict[str, Any]]

DEFAULT_MASK_IGNORE: tuple[str, ...] = ("...", "@")

HANDLER_NAMES: tuple[str, ...] = ("from_string", "to_string", "to_object", "mask_ignore")

_ALIASES: dict[str, str] = {
    "parser": "from_string",
    "stringify": "to_string",
    "stringifier": "to_string",
    "masks": "mask_ignore",
}

# Rendered in place of a field the parts mapping does not carry.
_MISSING_FIELD = "@"


# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------


class LatchFormat(ABC):
    """Abstract strategy that parses and renders permission strings."""

    #: Human-readable grammar used in parse error messages.
    expected: str | None = None

    @abstractmethod
    def parse(self, value: str) -> dict[str, str] | None:
        """Return the named parts of ``value`` or ``None`` if it does not match."""

    @abstractmethod
    def stringify(self, parts: Mapping[str, Any]) -> str:
        """Render ``parts`` back to the string form."""


class _PartsView(dict):
    def __missing__(self, key: str) -> str:
        return _MISSING_FIELD


class RegexFormat(LatchFormat):
    """A format built from a named-group regex and a ``str.format`` template.

    Fields the template names but the parts mapping lacks are rendered as
    ``"@"`` so a partially-masked latch still reads as a wildcard.

    Parameters
    ----------
    pattern:
        Regular expression with named groups, one per part.
    template:
        Format string referencing the same names, e.g. ``"{source}::{noun}"``.
    expected:
        Optional grammar hint shown in :class:`~latch.errors.ParseError`.
    """

    def __init__(self, pattern: str | re.Pattern[str], template: str, expected: str | None = None) -> None:
        self.pattern: re.Pattern[str] = re.compile(pattern)
        self.template = template
        self.expected = expected

    def parse(self, value: str) -> dict[str, str] | None:
        match = self.pattern.match(value)
        if match is None:
            return None
        return match.groupdict()

    def stringify(self, parts: Mapping[str, Any]) -> str:
        return self.template.format_map(_PartsView(parts))

    def __repr__(self) -> str:
        return f"RegexFormat(pattern={self.pattern.pattern!r}, template={self.template!r})"


class DefaultFormat(RegexFormat):
    """The ``SOURCE::NOUN::VERB`` grammar.

    ``SOURCE`` and ``NOUN`` match non-greedily, ``VERB`` greedily, so
    ``a::b::c::d`` parses as ``source="a", noun="b", verb="c::d"``.
    """

    PATTERN = r"^(?P<source>.+?)::(?P<noun>.+?)::(?P<verb>.+)$"
    TEMPLATE = "{source}::{noun}::{verb}"

    def __init__(self) -> None:
        super().__init__(self.PATTERN, self.TEMPLATE, expected="SOURCE::NOUN::VERB")


# ---------------------------------------------------------------------------
# HandlerBundle
# ---------------------------------------------------------------------------


def _identity(parts: Mapping[str, Any]) -> dict[str, Any]:
    return dict(parts)


@dataclass
class HandlerBundle:
    """Mutable table of handler functions shared by reference.

    Attributes
    ----------
    from_string:
        Parser returning a parts mapping, a regex match, or ``None``.
    to_string:
        Stringifier rendering a parts mapping.
    to_object:
        Structured view over the parts; identity by default.
    mask_ignore:
        Field values dropped during masking.
    expected:
        Grammar hint for parse errors. Cleared when the parser is replaced.
    """

    from_string: Parser
    to_string: Stringifier
    to_object: ObjectView = _identity
    mask_ignore: tuple[str, ...] = field(default=DEFAULT_MASK_IGNORE)
    expected: str | None = None

    @classmethod
    def from_format(cls, fmt: LatchFormat | None = None) -> HandlerBundle:
        """Build a bundle whose parser and stringifier come from ``fmt``."""
        fmt = fmt or DefaultFormat()
        return cls(from_string=fmt.parse, to_string=fmt.stringify, expected=fmt.expected)

    @staticmethod
    def resolve_name(name: str) -> str:
        """Map a handler name or alias onto its slot name."""
        slot = _ALIASES.get(name, name)
        if slot not in HANDLER_NAMES:
            raise UnknownHandlerError(name, sorted([*HANDLER_NAMES, *_ALIASES]))
        return slot

    def get(self, name: str) -> Any:
        return getattr(self, self.resolve_name(name))

    def set(self, name: str, value: Any) -> None:
        slot = self.resolve_name(name)
        if slot == "mask_ignore":
            value = (value,) if isinstance(value, str) else tuple(value)
        elif slot == "from_string":
            self.expected = None
        setattr(self, slot, value)

    def apply_format(self, fmt: LatchFormat) -> None:
        """Replace the parser and stringifier with those of ``fmt``."""
        self.from_string = fmt.parse
        self.to_string = fmt.stringify
        self.expected = fmt.expected

    def copy(self) -> HandlerBundle:
        """Return an independent bundle holding the same handler functions."""
        return HandlerBundle(
            from_string=self.from_string,
            to_string=self.to_string,
            to_object=self.to_object,
            mask_ignore=self.mask_ignore,
            expected=self.expected,
        )
