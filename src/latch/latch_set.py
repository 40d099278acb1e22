"""An ordered collection of latches sharing one grammar.

A :class:`LatchSet` holds latches in insertion order, keeps a lookup table
keyed by each latch's canonical string, and hands its
:class:`~latch.handlers.HandlerBundle` to every latch it adopts.

Membership is exact: ``has("foo::bar::*")`` is only true if that literal
string is a member. ``grant`` is a one-shot conditional add evaluated at
call time, so grants must be issued after the memberships they depend on.

Example
-------
::

    latches = (
        LatchSet()
        .add("acme::sales::all")
        .grant("acme::sales::all", "acme::sales::{create,delete}")
    )
    latches.has_all("acme::sales::create", "acme::sales::delete")  # True
    latches.mask("...::...::@").to_array()  # ["acme::sales::all", ...]
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from latch.errors import AmbiguousOptionCallError, InvalidInputError, UnknownSettingError
from latch.expansion import Expander, expand_braces
from latch.handlers import HandlerBundle, LatchFormat
from latch.latch import Latch, LatchInput
from latch.request import RequestDescriptor, classify_request

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class LatchSetSettings(BaseModel):
    """Behavioural switches for a :class:`LatchSet`."""

    model_config = {"extra": "forbid"}

    expand_patterns: bool = Field(default=True)


def _flatten(members: Iterable[Any]) -> Iterator[Any]:
    """Yield leaf members from arbitrarily nested lists, tuples and sets."""
    for member in members:
        if isinstance(member, (str, Latch, Mapping)):
            yield member
        elif isinstance(member, Iterable):
            yield from _flatten(member)
        else:
            yield member


class LatchSet:
    """An ordered, lookup-indexed collection of :class:`~latch.latch.Latch`.

    Parameters
    ----------
    *members:
        Initial members, passed to :meth:`add`.
    expander:
        Brace-expansion function applied to string members when the
        ``expand_patterns`` setting is on.
    handlers:
        Handler bundle to share with members. A default
        ``SOURCE::NOUN::VERB`` bundle is created when omitted.
    settings:
        A :class:`LatchSetSettings` or a mapping of setting values.
    """

    def __init__(
        self,
        *members: Any,
        expander: Expander = expand_braces,
        handlers: HandlerBundle | None = None,
        settings: LatchSetSettings | Mapping[str, Any] | None = None,
    ) -> None:
        self._members: list[Latch] = []
        self._members_by_key: dict[str, Latch] = {}
        self._handlers: HandlerBundle = handlers if handlers is not None else HandlerBundle.from_format()
        self._settings: LatchSetSettings = LatchSetSettings()
        self._expander = expander

        if isinstance(settings, LatchSetSettings):
            self._settings = settings.model_copy()
        elif settings is not None:
            self.set_option(settings)

        if members:
            self.add(*members)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def handlers(self) -> HandlerBundle:
        """The handler bundle shared, by reference, with adopted latches."""
        return self._handlers

    @property
    def settings(self) -> LatchSetSettings:
        return self._settings

    @property
    def members(self) -> tuple[Latch, ...]:
        """Members in insertion order, duplicates included."""
        return tuple(self._members)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_option(self, option: str | Mapping[str, Any], value: Any = _UNSET) -> LatchSet:
        """Set one named setting, or merge a mapping of settings.

        Raises
        ------
        UnknownSettingError
            If a setting name is not recognised.
        AmbiguousOptionCallError
            If a mapping and a value are given together.
        InvalidInputError
            If a value fails validation, or a name is given without a value.
        """
        if isinstance(option, Mapping):
            if value is not _UNSET:
                raise AmbiguousOptionCallError(
                    "set_option() takes either a mapping of settings or a name and a value, not both"
                )
            updates = dict(option)
        else:
            if value is _UNSET:
                raise InvalidInputError(f"set_option({option!r}) requires a value")
            updates = {option: value}

        known = sorted(LatchSetSettings.model_fields)
        for name in updates:
            if name not in LatchSetSettings.model_fields:
                raise UnknownSettingError(name, known)

        try:
            self._settings = LatchSetSettings.model_validate({**self._settings.model_dump(), **updates})
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid setting value: {exc}") from exc
        return self

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def set_handler(self, name: str, handler: Any) -> LatchSet:
        """Replace one slot of the shared handler bundle.

        Latches already holding this bundle see the new function straight
        away, but their parts are not re-parsed and the lookup table is not
        rebuilt; call :meth:`rebuild` or re-add them if keys change.
        """
        self._handlers.set(name, handler)
        return self

    def set_parser(self, parser: Callable[[str], Any]) -> LatchSet:
        return self.set_handler("from_string", parser)

    def set_stringify(self, stringifier: Callable[[Mapping[str, Any]], str]) -> LatchSet:
        return self.set_handler("to_string", stringifier)

    def set_format(self, fmt: LatchFormat) -> LatchSet:
        """Use ``fmt`` for both parsing and stringifying members."""
        self._handlers.apply_format(fmt)
        return self

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _expand(self, value: str) -> list[str]:
        if not self._settings.expand_patterns:
            return [value]
        return list(self._expander(value))

    def _adopt(self, member: Any) -> list[Latch]:
        if isinstance(member, Latch):
            # Reparenting waits until every member has parsed.
            member.parse_for(self._handlers)
            return [member]
        if isinstance(member, str):
            return [Latch(expanded, parent=self) for expanded in self._expand(member)]
        return [Latch(member, parent=self)]

    def add(self, *members: Any) -> LatchSet:
        """Append members, expanding brace patterns in strings first.

        Accepts latches, strings, parts mappings and nested sequences of
        them. Existing latches are reparented to this set once every member
        has parsed.

        Raises
        ------
        ParseError
            If a member does not match this set's grammar. Nothing is added
            and no existing latch is reparented.
        """
        flat = list(_flatten(members))
        adopted: list[Latch] = []
        for member in flat:
            adopted.extend(self._adopt(member))

        for member in flat:
            if isinstance(member, Latch):
                member.set_parent(self)
        self._members.extend(adopted)
        self.rebuild()
        logger.debug("Added %d latch(es) to set; size now %d", len(adopted), len(self._members))
        return self

    def clear(self) -> LatchSet:
        """Remove every member."""
        self._members = []
        self.rebuild()
        return self

    def rebuild(self) -> LatchSet:
        """Recompute the canonical-string lookup table from the members.

        Later members win when two render to the same string.
        """
        self._members_by_key = {member.to_string(): member for member in self._members}
        return self

    def grant(self, prerequisite: Any, *members: Any) -> LatchSet:
        """Add ``members`` only if every prerequisite is currently held.

        The check happens once, now. Adding the prerequisite later does not
        apply the grant retroactively.
        """
        if self.has_all(prerequisite):
            self.add(*members)
        else:
            logger.debug("Grant skipped; prerequisite %r not held", prerequisite)
        return self

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _key(self, member: LatchInput) -> str:
        if isinstance(member, str):
            return member
        if isinstance(member, Latch):
            return member.to_string()
        if isinstance(member, Mapping):
            return self._handlers.to_string(member)
        raise InvalidInputError(
            f"Cannot look up {type(member).__name__} in a LatchSet - requires Latch, str or Mapping"
        )

    def has(self, member: LatchInput) -> bool:
        """Return True if ``member``'s canonical string is held exactly."""
        return self._key(member) in self._members_by_key

    def has_all(self, *members: Any) -> bool:
        """Return True if every (flattened) member is held."""
        return all(self.has(member) for member in _flatten(members))

    def has_any(self, *members: Any) -> bool:
        """Return True if at least one (flattened) member is held."""
        return any(self.has(member) for member in _flatten(members))

    def get(self, member: LatchInput) -> Latch | None:
        """Return the held latch for ``member``, or ``None``."""
        return self._members_by_key.get(self._key(member))

    # ------------------------------------------------------------------
    # Masking
    # ------------------------------------------------------------------

    def mask(self, mask: LatchInput) -> LatchSet:
        """Return a NEW set holding every member masked with ``mask``.

        The result has the same size as this set; nothing is filtered out.
        """
        masked = self.clone(members=False)
        masked.add([member.mask(mask) for member in self._members])
        return masked

    def mask_from_request(self, request: RequestDescriptor | Mapping[str, Any], field: str = "verb") -> LatchSet:
        """Mask every member's ``field`` with the verb guessed from ``request``."""
        return self.mask({field: classify_request(request)})

    # ------------------------------------------------------------------
    # Output / copying
    # ------------------------------------------------------------------

    def to_array(self) -> list[str]:
        """Canonical strings of all members in insertion order."""
        return [member.to_string() for member in self._members]

    def clone(self, members: bool = True, settings: bool = True) -> LatchSet:
        """Return a fresh set with a copy of this set's handlers.

        Parameters
        ----------
        members:
            Clone and re-add every member to the new set.
        settings:
            Copy the settings; otherwise the new set starts with defaults.
        """
        twin = LatchSet(
            expander=self._expander,
            handlers=self._handlers.copy(),
            settings=self._settings if settings else None,
        )
        if members:
            twin.add([member.clone() for member in self._members])
        return twin

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Latch]:
        return iter(self._members)

    def __contains__(self, member: object) -> bool:
        if not isinstance(member, (str, Latch, Mapping)):
            return False
        return self.has(member)

    def __repr__(self) -> str:
        return f"LatchSet({self.to_array()!r})"
