"""Tests for tag resolution and card chip maintenance."""

from dataclasses import replace

from optikan.resolver import refresh_card_tags, resolve_tags, strip_tag

from .conftest import _ids, _make_card, _make_tag

TAGS = (_make_tag("t1", "bug"), _make_tag("t3", "ui"), _make_tag("t4", "docs"))


def test_resolve_drops_unknown_and_keeps_order():
    assert _ids(resolve_tags(["t1", "t2", "t3"], TAGS)) == ["t1", "t3"]


def test_resolve_follows_request_order():
    assert _ids(resolve_tags(["t4", "t1"], TAGS)) == ["t4", "t1"]


def test_resolve_duplicates_once():
    assert _ids(resolve_tags(["t1", "t1", "t3"], TAGS)) == ["t1", "t3"]


def test_resolve_unknown_collection():
    assert resolve_tags(["t1"], None) == ()


def test_resolve_returns_cached_objects():
    assert resolve_tags(["t3"], TAGS)[0] is TAGS[1]


def test_refresh_card_tags_swaps_new_version():
    cards = [_make_card("A", "todo", tags=TAGS[:2]), _make_card("B", "todo", 1)]
    renamed = replace(TAGS[0], label="defect")
    result = refresh_card_tags(cards, renamed)
    assert [t.label for t in result[0].tags] == ["defect", "ui"]
    assert result[1] is cards[1]


def test_strip_tag():
    cards = [_make_card("A", "todo", tags=TAGS), _make_card("B", "todo", 1)]
    result = strip_tag(cards, "t3")
    assert _ids(result[0].tags) == ["t1", "t4"]
    assert result[1] is cards[1]
