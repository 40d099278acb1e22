"""A single structured permission token.

A :class:`Latch` holds one identity string such as ``acme-co::sales::manage``
broken into named parts by a pluggable parser. By default the grammar is
``SOURCE::NOUN::VERB``; a parent :class:`~latch.latch_set.LatchSet` can
supply a different one, which its latches pick up by reference.

Example
-------
::

    latch = Latch("foo::@::@")
    latch.mask({"noun": "bar", "verb": "baz"}).to_string()  # "foo::bar::baz"
    latch.matches("foo::@::@")                              # True
    str(latch)                                              # unchanged: "foo::@::@"
"""
from __future__ import annotations

import logging
import re
import weakref
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Union

from latch.errors import InvalidInputError, ParseError
from latch.handlers import HandlerBundle, LatchFormat

if TYPE_CHECKING:
    from latch.latch_set import LatchSet

logger = logging.getLogger(__name__)

EMPTY = "EMPTY"

LatchInput = Union["Latch", str, Mapping[str, Any]]


def _parse(parser: Callable[[str], Any], value: str, expected: str | None) -> dict[str, Any]:
    parsed = parser(value)
    if isinstance(parsed, re.Match):
        parsed = parsed.groupdict()
    if parsed is None:
        raise ParseError(value, expected)
    return dict(parsed)


class Latch:
    """One permission identity composed of named parts.

    Parameters
    ----------
    value:
        Optional string or parts mapping passed to :meth:`set`.
    parent:
        Optional latch set to inherit handlers from. Adopted before
        ``value`` is parsed so the parent's grammar applies.

    Raises
    ------
    ParseError
        If ``value`` is a string the active parser cannot match.
    InvalidInputError
        If ``value`` is neither a string nor a mapping.
    """

    def __init__(self, value: str | Mapping[str, Any] | None = None, parent: LatchSet | None = None) -> None:
        self._raw_id: str | None = None
        self._parts: dict[str, Any] | None = None
        self._parent_ref: weakref.ReferenceType[LatchSet] | None = None
        self._bundle: HandlerBundle = HandlerBundle.from_format()
        self._overrides: dict[str, Any] = {}

        if parent is not None:
            self.set_parent(parent)
        if value is not None:
            self.set(value)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handler(self, name: str) -> Any:
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._bundle, name)

    def set_handler(self, name: str, handler: Any) -> Latch:
        """Override one handler slot on this latch only.

        The parent's bundle is left untouched; this latch consults its own
        override first from now on, until it is reparented.
        """
        slot = HandlerBundle.resolve_name(name)
        if slot == "mask_ignore":
            handler = (handler,) if isinstance(handler, str) else tuple(handler)
        self._overrides[slot] = handler
        return self

    def set_parser(self, parser: Callable[[str], Any]) -> Latch:
        """Override the parser (the ``from_string`` handler)."""
        self._overrides.pop("expected", None)
        return self.set_handler("from_string", parser)

    def set_stringify(self, stringifier: Callable[[Mapping[str, Any]], str]) -> Latch:
        """Override the stringifier (the ``to_string`` handler)."""
        return self.set_handler("to_string", stringifier)

    def set_format(self, fmt: LatchFormat) -> Latch:
        """Override both parser and stringifier from a :class:`LatchFormat`."""
        self.set_handler("from_string", fmt.parse)
        self.set_handler("to_string", fmt.stringify)
        self._overrides["expected"] = fmt.expected
        return self

    def _expected(self) -> str | None:
        if "expected" in self._overrides:
            return self._overrides["expected"]
        if "from_string" in self._overrides:
            return None
        return self._bundle.expected

    # ------------------------------------------------------------------
    # Parentage
    # ------------------------------------------------------------------

    @property
    def parent(self) -> LatchSet | None:
        """The latch set this latch inherits handlers from, if still alive."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def set_parent(self, parent: LatchSet | None) -> Latch:
        """Adopt ``parent``'s handler bundle by reference.

        Per-instance overrides are dropped. If this latch already has a raw
        id it is re-parsed with the parent's parser first; on
        :class:`~latch.errors.ParseError` the latch keeps its old parent,
        handlers and parts.
        """
        if parent is None:
            if self._raw_id is not None:
                self.set(self._raw_id)
            return self

        parts = self.parse_for(parent.handlers)
        self._parent_ref = weakref.ref(parent)
        self._bundle = parent.handlers
        self._overrides.clear()
        if parts is not None:
            self._parts = parts
        return self

    def parse_for(self, handlers: HandlerBundle) -> dict[str, Any] | None:
        """Parse this latch's raw id with ``handlers`` without changing it.

        Returns ``None`` when the latch has no raw id yet.

        Raises
        ------
        ParseError
            If ``handlers`` cannot parse the raw id.
        """
        if self._raw_id is None:
            return None
        return _parse(handlers.from_string, self._raw_id, handlers.expected)

    # ------------------------------------------------------------------
    # Setters / getters
    # ------------------------------------------------------------------

    def set(self, value: str | Mapping[str, Any]) -> Latch:
        """Set this latch from a string or a parts mapping.

        Raises
        ------
        ParseError
            If ``value`` is a string the active parser does not match.
        InvalidInputError
            If ``value`` is neither a string nor a mapping.
        """
        if isinstance(value, str):
            parts = _parse(self._handler("from_string"), value, self._expected())
            self._raw_id = value
            self._parts = parts
        elif isinstance(value, Mapping):
            self._parts = dict(value)
            self._raw_id = self._handler("to_string")(self._parts)
        else:
            raise InvalidInputError(
                f"Unknown input to Latch.set() - requires str or Mapping, got {type(value).__name__}"
            )
        return self

    @property
    def raw_id(self) -> str | None:
        """The last string form this latch was set from or rendered to."""
        return self._raw_id

    @property
    def parts(self) -> dict[str, Any]:
        """A copy of the parsed parts; empty when unset."""
        return dict(self._parts) if self._parts is not None else {}

    def to_string(self) -> str:
        """Render the parts through the active stringifier."""
        if self._parts is None:
            return EMPTY
        return self._handler("to_string")(self._parts)

    def to_object(self) -> dict[str, Any]:
        """Return the structured view of this latch's parts."""
        if self._parts is None:
            return {}
        return self._handler("to_object")(self._parts)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def matches(self, subject: LatchInput) -> bool:
        """Return True if every field of ``subject`` equals this latch's field.

        Fields absent from ``subject`` are not checked, so this is a subset
        match. A string subject is parsed with this latch's own handlers.
        """
        if isinstance(subject, Latch):
            subject_parts = subject.parts
        elif isinstance(subject, Mapping):
            subject_parts = dict(subject)
        else:
            subject_parts = self.clone(subject).parts
        return self.is_equal(subject_parts)

    def is_equal(self, parts: Mapping[str, Any]) -> bool:
        """Compare ``parts`` field by field against this latch.

        Values are compared as strings, so ``1`` and ``"1"`` are equal.
        """
        own = self._parts or {}
        return all(key in own and str(own[key]) == str(value) for key, value in parts.items())

    def mask(self, mask: LatchInput) -> Latch:
        """Return a NEW latch with ``mask``'s concrete fields laid over this one.

        Wildcard values (``"..."`` and ``"@"`` by default) are pruned from
        both sides first, so a wildcard in the mask never overwrites a
        concrete base field and a wildcard in the base is filled in by the
        mask when it supplies one.
        """
        ignore = self._handler("mask_ignore")

        def prune(obj: Mapping[str, Any]) -> dict[str, Any]:
            return {key: value for key, value in obj.items() if value not in ignore}

        if isinstance(mask, Latch):
            mask_parts = mask.to_object()
        else:
            mask_parts = self.clone(mask).to_object()

        masked = self.clone({**prune(self.to_object()), **prune(mask_parts)})
        logger.debug("Masked %s with %r -> %s", self, mask, masked)
        return masked

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self, value: str | Mapping[str, Any] | None = None) -> Latch:
        """Return a new latch sharing this latch's parent and handlers.

        Parameters
        ----------
        value:
            Initial value for the clone; defaults to this latch's raw id.
        """
        twin = Latch()
        twin._parent_ref = self._parent_ref
        twin._bundle = self._bundle
        twin._overrides = dict(self._overrides)
        value = value if value is not None else self._raw_id
        if value is not None:
            twin.set(value)
        return twin

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Latch({self.to_string()!r})"
