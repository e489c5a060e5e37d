"""Tests for tag mutations and their effect on cached cards."""

import pytest

from optikan.cache import cards_key, tags_key
from optikan.models import find
from optikan.ops.tags import create_tag, delete_tag, update_tag
from optikan.patch import TagPatch

from ..conftest import _ids

TAGS = tags_key("b1")
CARDS = cards_key("b1")


@pytest.mark.asyncio
async def test_create_tag(session, remote):
    await session.open_board("b1")
    outcome = await create_tag(session, "b1", " docs ", "#3B82F6", tag_id="t3")

    assert outcome.value.label == "docs"
    assert _ids(session.read(TAGS)) == ["t1", "t2", "t3"]
    assert remote.tags["t3"].color == "#3B82F6"


@pytest.mark.asyncio
async def test_create_tag_bad_color_rolls_back(session, failures):
    await session.open_board("b1")
    before = session.read(TAGS)
    outcome = await create_tag(session, "b1", "docs", "blue")
    assert "Invalid tag color" in outcome.message
    assert session.read(TAGS) == before
    assert len(failures) == 1


@pytest.mark.asyncio
async def test_update_tag_refreshes_card_chips(session, remote):
    await session.open_board("b1")

    outcome = await update_tag(session, "b1", "t1", TagPatch(label="defect"))

    assert outcome.value.label == "defect"
    assert find(session.read(TAGS), "t1").label == "defect"
    assert [t.label for t in find(session.read(CARDS), "C").tags] == ["defect"]
    assert find(session.read(CARDS), "A").tags == ()


@pytest.mark.asyncio
async def test_update_tag_failure_restores_cards_and_tags(session, remote):
    await session.open_board("b1")
    before = (session.read(TAGS), session.read(CARDS))
    remote.fail_next("update_tag")

    outcome = await update_tag(session, "b1", "t1", TagPatch(label="defect"))

    assert not outcome.ok
    assert (session.read(TAGS), session.read(CARDS)) == before


@pytest.mark.asyncio
async def test_delete_tag_strips_cards(session, remote):
    await session.open_board("b1")

    outcome = await delete_tag(session, "b1", "t1")

    assert outcome.ok
    assert _ids(session.read(TAGS)) == ["t2"]
    assert find(session.read(CARDS), "C").tags == ()
    assert remote.card_tags["C"] == []
    await session.settle()
    assert find(session.read(CARDS), "C").tags == ()
