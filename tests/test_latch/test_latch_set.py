"""Tests for LatchSet membership, grants, masking and settings."""
from __future__ import annotations

import pytest

from latch.errors import (
    AmbiguousOptionCallError,
    InvalidInputError,
    ParseError,
    UnclassifiableRequestError,
    UnknownSettingError,
)
from latch.latch import Latch
from latch.latch_set import LatchSet, LatchSetSettings


@pytest.fixture()
def basic_set() -> LatchSet:
    return (
        LatchSet()
        .add(Latch("foo::bar::one"), Latch("foo::bar::two"))
        .add("foo::bar::three")
    )


# ---------------------------------------------------------------------------
# Membership queries
# ---------------------------------------------------------------------------


class TestLatchSetMembership:
    def test_has_string(self, basic_set: LatchSet) -> None:
        assert basic_set.has("foo::bar::one") is True

    def test_has_latch(self, basic_set: LatchSet) -> None:
        assert basic_set.has(Latch("foo::bar::one")) is True
        assert basic_set.has(Latch("foo::bar::four")) is False

    def test_has_mapping(self, basic_set: LatchSet) -> None:
        assert basic_set.has({"source": "foo", "noun": "bar", "verb": "two"}) is True

    def test_has_is_exact_not_pattern(self, basic_set: LatchSet) -> None:
        assert basic_set.has("foo::bar::*") is False
        assert basic_set.has("foo::bar") is False

    def test_has_all(self, basic_set: LatchSet) -> None:
        assert basic_set.has_all(Latch("foo::bar::one")) is True
        assert basic_set.has_all(Latch("foo::bar::one"), "foo::bar::three") is True
        assert basic_set.has_all(Latch("foo::bar::one"), "foo::bar::four") is False

    def test_has_any(self, basic_set: LatchSet) -> None:
        assert basic_set.has_any(Latch("foo::bar::one")) is True
        assert basic_set.has_any(Latch("foo::bar::one"), "foo::bar::four") is True
        assert basic_set.has_any("foo::bar::four", "foo::bar::five") is False

    def test_has_all_flattens_nested(self, basic_set: LatchSet) -> None:
        assert basic_set.has_all(["foo::bar::one", ["foo::bar::two"]]) is True
        assert basic_set.has_any([["foo::bar::nine"], "foo::bar::two"]) is True

    def test_has_rejects_unsupported_type(self, basic_set: LatchSet) -> None:
        with pytest.raises(InvalidInputError):
            basic_set.has(3)  # type: ignore[arg-type]

    def test_contains_operator(self, basic_set: LatchSet) -> None:
        assert "foo::bar::two" in basic_set
        assert 3 not in basic_set

    def test_get_returns_held_latch(self, basic_set: LatchSet) -> None:
        held = basic_set.get("foo::bar::three")
        assert held is not None and held.parent is basic_set
        assert basic_set.get("foo::bar::nine") is None

    def test_to_array_preserves_order(self, basic_set: LatchSet) -> None:
        assert basic_set.to_array() == ["foo::bar::one", "foo::bar::two", "foo::bar::three"]

    def test_len_and_iter(self, basic_set: LatchSet) -> None:
        assert len(basic_set) == 3
        assert [str(m) for m in basic_set] == basic_set.to_array()

    def test_hasall_hasany_truth_table(self) -> None:
        latches = LatchSet("a::a::a", "b::b::b")
        assert latches.has_all("a::a::a", "b::b::b") is True
        assert latches.has_all("a::a::a", "c::c::c") is False
        assert latches.has_any("a::a::a", "c::c::c") is True
        assert latches.has_any("c::c::c", "d::d::d") is False


# ---------------------------------------------------------------------------
# Adding
# ---------------------------------------------------------------------------


class TestLatchSetAdd:
    def test_add_reparents_latch(self) -> None:
        latches = LatchSet()
        latch = Latch("a::b::c")
        latches.add(latch)
        assert latch.parent is latches
        assert latch.to_object() == {"source": "a", "noun": "b", "verb": "c"}

    def test_add_flattens_deeply_nested(self) -> None:
        latches = LatchSet().add(["a::b::c", ["d::e::f", ("g::h::i",)]])
        assert latches.to_array() == ["a::b::c", "d::e::f", "g::h::i"]

    def test_add_mapping(self) -> None:
        latches = LatchSet().add({"source": "a", "noun": "b", "verb": "c"})
        assert latches.has("a::b::c")

    def test_add_expands_braces(self) -> None:
        latches = LatchSet().add(["a::b::{x,y}"])
        assert sorted(latches.to_array()) == ["a::b::x", "a::b::y"]

    def test_expansion_order_follows_arguments(self) -> None:
        latches = LatchSet().add("a::{1,2}::x", ["b::b::{p,q}"])
        assert latches.to_array() == ["a::1::x", "a::2::x", "b::b::p", "b::b::q"]

    def test_expansion_disabled(self) -> None:
        latches = LatchSet().set_option("expand_patterns", False).add("a::b::{x,y}")
        assert latches.to_array() == ["a::b::{x,y}"]

    def test_custom_expander_injected(self) -> None:
        latches = LatchSet(expander=lambda p: [p, p.upper()]).add("a::b::c")
        assert latches.to_array() == ["a::b::c", "A::B::C"]

    def test_latch_instances_are_not_expanded(self) -> None:
        latches = LatchSet(settings={"expand_patterns": False})
        latch = Latch("a::b::{x,y}")
        latches.set_option("expand_patterns", True).add(latch)
        assert latches.to_array() == ["a::b::{x,y}"]

    def test_parse_error_adds_nothing(self) -> None:
        latches = LatchSet("a::b::c")
        loose = Latch("x::y::z")
        with pytest.raises(ParseError):
            latches.add(loose, "d::e::f", "broken")
        assert latches.to_array() == ["a::b::c"]
        assert loose.parent is None

    def test_unparseable_latch_leaves_earlier_latches_alone(self) -> None:
        other = LatchSet()
        first = Latch("a::b::c", parent=other)
        target = LatchSet().set_parser(lambda v: v.startswith("a") and {"id": v} or None)
        with pytest.raises(ParseError):
            target.add(first, Latch("z::y::x"))
        assert len(target) == 0
        assert first.parent is other

    def test_readding_own_latch_drops_overrides(self) -> None:
        latches = LatchSet()
        latch = Latch("a::b::c", parent=latches).set_stringify(lambda p: "local")
        latches.add(latch)
        assert latches.to_array() == ["a::b::c"]

    def test_generator_members_are_reparented(self) -> None:
        latches = LatchSet()
        loose = Latch("a::b::c")
        latches.add(member for member in [loose, "d::e::f"])
        assert loose.parent is latches
        assert latches.to_array() == ["a::b::c", "d::e::f"]

    def test_duplicates_kept_in_order_but_lookup_dedups(self) -> None:
        first = Latch("a::b::c")
        second = Latch("a::b::c")
        latches = LatchSet().add(first, second)
        assert latches.to_array() == ["a::b::c", "a::b::c"]
        assert latches.get("a::b::c") is second

    def test_constructor_members(self) -> None:
        assert LatchSet("a::b::c", ["d::e::f"]).to_array() == ["a::b::c", "d::e::f"]


# ---------------------------------------------------------------------------
# clear / rebuild
# ---------------------------------------------------------------------------


class TestLatchSetClearRebuild:
    def test_clear_empties_set(self, basic_set: LatchSet) -> None:
        basic_set.clear()
        assert basic_set.to_array() == []
        assert basic_set.has("foo::bar::one") is False

    def test_clear_is_idempotent(self) -> None:
        latches = LatchSet().clear().clear()
        assert len(latches) == 0

    def test_rebuild_after_stringifier_change(self, basic_set: LatchSet) -> None:
        basic_set.set_stringify(lambda p: f"{p['source']}/{p['noun']}/{p['verb']}")
        assert basic_set.has("foo/bar/one") is False
        basic_set.rebuild()
        assert basic_set.has("foo/bar/one") is True
        assert basic_set.has("foo::bar::one") is False


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------


class TestLatchSetGrant:
    def test_hierarchical_grants(self) -> None:
        latches = (
            LatchSet()
            .add("foo::bar::all")
            .grant("foo::bar::all", "foo::bar::foo")
            .grant("foo::bar::foo", "foo::bar::flarp")
            .grant("foo::bar::all", ["foo::bar::bar", "foo::bar::baz"])
            .grant("foo::bar::all", ["foo::bar::corge", Latch("foo::bar::grault")])
        )
        assert sorted(latches.to_array()) == [
            "foo::bar::all",
            "foo::bar::bar",
            "foo::bar::baz",
            "foo::bar::corge",
            "foo::bar::flarp",
            "foo::bar::foo",
            "foo::bar::grault",
        ]

    def test_grant_before_prerequisite_is_noop(self) -> None:
        latches = LatchSet().grant("foo::bar::all", "foo::bar::foo").add("foo::bar::all")
        assert latches.to_array() == ["foo::bar::all"]

    def test_grant_after_prerequisite(self) -> None:
        latches = LatchSet().add("foo::bar::all").grant("foo::bar::all", "foo::bar::foo")
        assert latches.to_array() == ["foo::bar::all", "foo::bar::foo"]

    def test_grant_requires_all_prerequisites(self) -> None:
        latches = LatchSet("a::a::a")
        latches.grant(["a::a::a", "b::b::b"], "c::c::c")
        assert latches.has("c::c::c") is False
        latches.add("b::b::b").grant(["a::a::a", "b::b::b"], "c::c::c")
        assert latches.has("c::c::c") is True

    def test_grant_expands_patterns(self) -> None:
        latches = LatchSet("a::a::a").grant("a::a::a", "a::b::{x,y}")
        assert latches.has_all("a::b::x", "a::b::y")


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------


class TestLatchSetMask:
    def test_mask_fills_wildcard_verb(self) -> None:
        latches = LatchSet().add("foo::bar::@")
        assert latches.mask("...::...::baz").to_array() == ["foo::bar::baz"]

    def test_mask_returns_new_set(self) -> None:
        latches = LatchSet().add("foo::bar::@")
        masked = latches.mask("...::...::baz")
        assert masked is not latches
        assert latches.to_array() == ["foo::bar::@"]
        assert all(member.parent is masked for member in masked)

    def test_mask_preserves_size(self, basic_set: LatchSet) -> None:
        masked = basic_set.mask({"verb": "same"})
        assert len(masked) == len(basic_set)
        assert masked.to_array() == ["foo::bar::same"] * 3

    def test_mask_copies_settings(self) -> None:
        latches = LatchSet(settings={"expand_patterns": False}).add("foo::bar::@")
        assert latches.mask({"verb": "x"}).settings.expand_patterns is False

    def test_mask_with_wildcard_keeps_member(self) -> None:
        latches = LatchSet().add("foo::bar::@")
        assert latches.mask("...::...::@").to_array() == ["foo::bar::@"]

    def test_mask_from_request(self) -> None:
        latches = LatchSet().add("acme::invoice::@")
        masked = latches.mask_from_request({"method": "GET", "params": {"id": "42"}})
        assert masked.to_array() == ["acme::invoice::get"]

    def test_mask_from_request_unclassifiable(self) -> None:
        with pytest.raises(UnclassifiableRequestError):
            LatchSet("a::b::@").mask_from_request({"method": "PUT"})


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestLatchSetOptions:
    def test_default_settings(self) -> None:
        assert LatchSet().settings == LatchSetSettings(expand_patterns=True)

    def test_set_single_option(self) -> None:
        assert LatchSet().set_option("expand_patterns", False).settings.expand_patterns is False

    def test_set_option_mapping(self) -> None:
        assert LatchSet().set_option({"expand_patterns": False}).settings.expand_patterns is False

    def test_unknown_setting_raises(self) -> None:
        with pytest.raises(UnknownSettingError, match="colour"):
            LatchSet().set_option("colour", "blue")

    def test_unknown_setting_in_mapping_raises(self) -> None:
        with pytest.raises(UnknownSettingError):
            LatchSet().set_option({"expand_patterns": True, "colour": "blue"})

    def test_mapping_plus_value_is_ambiguous(self) -> None:
        with pytest.raises(AmbiguousOptionCallError):
            LatchSet().set_option({"expand_patterns": True}, False)

    def test_name_without_value_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            LatchSet().set_option("expand_patterns")

    def test_invalid_value_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            LatchSet().set_option("expand_patterns", {"not": "a bool"})

    def test_failed_option_leaves_settings_untouched(self) -> None:
        latches = LatchSet().set_option("expand_patterns", False)
        with pytest.raises(UnknownSettingError):
            latches.set_option({"expand_patterns": True, "colour": "blue"})
        assert latches.settings.expand_patterns is False


# ---------------------------------------------------------------------------
# Handlers and cloning
# ---------------------------------------------------------------------------


class TestLatchSetHandlersAndClone:
    def test_single_string_mask_ignore(self) -> None:
        latches = LatchSet("foo::bar::*").set_handler("mask_ignore", "*")
        assert latches.handlers.mask_ignore == ("*",)
        assert latches.mask({"verb": "read"}).to_array() == ["foo::bar::read"]

    def test_handler_change_not_reparsed_into_existing_members(self) -> None:
        latches = LatchSet("a::b::c")
        latches.set_parser(lambda v: {"whole": v})
        assert latches.members[0].to_object() == {"source": "a", "noun": "b", "verb": "c"}

    def test_members_added_after_handler_change_use_it(self) -> None:
        latches = LatchSet().set_parser(lambda v: {"whole": v}).set_stringify(lambda p: p["whole"])
        latches.add("anything-goes")
        assert latches.members[0].to_object() == {"whole": "anything-goes"}

    def test_clone_copies_members_as_new_instances(self, basic_set: LatchSet) -> None:
        twin = basic_set.clone()
        assert twin.to_array() == basic_set.to_array()
        assert all(a is not b for a, b in zip(twin, basic_set))
        assert all(member.parent is twin for member in twin)

    def test_clone_without_members(self, basic_set: LatchSet) -> None:
        assert basic_set.clone(members=False).to_array() == []

    def test_clone_without_settings_uses_defaults(self) -> None:
        latches = LatchSet(settings={"expand_patterns": False})
        assert latches.clone(settings=False).settings.expand_patterns is True

    def test_clone_handlers_are_independent(self) -> None:
        latches = LatchSet("a::b::c")
        twin = latches.clone()
        twin.set_stringify(lambda p: "changed")
        assert latches.to_array() == ["a::b::c"]
        assert twin.to_array() == ["changed"]

    def test_repr(self) -> None:
        assert repr(LatchSet("a::b::c")) == "LatchSet(['a::b::c'])"
