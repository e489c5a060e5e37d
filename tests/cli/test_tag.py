"""Tests for 'optikan tag' commands."""

import json

import pytest

from optikan.cli.tag import tag_add, tag_delete, tag_list

from .conftest import _args, _reload


def test_tag_list(data_file, capsys):
    assert tag_list(_args(data_file)) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("t1  bug")
    assert "1 cards  #EF4444" in lines[0]
    assert "0 cards" in lines[1]


def test_tag_list_json(data_file, capsys):
    assert tag_list(_args(data_file, json=True)) == 0
    data = json.loads(capsys.readouterr().out)
    assert [(t["label"], t["cards"]) for t in data] == [("bug", 1), ("ui", 0)]


def test_tag_add(data_file, capsys):
    assert tag_add(_args(data_file, label="docs", color="#3B82F6", json=True)) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["label"] == "docs"
    assert _reload(data_file).tags[data["id"]].color == "#3B82F6"


def test_tag_add_bad_color(data_file, capsys):
    with pytest.raises(SystemExit, match="1"):
        tag_add(_args(data_file, label="docs", color="blue"))
    assert "color" in capsys.readouterr().err
    assert len(_reload(data_file).tags) == 2


def test_tag_delete_strips_cards(data_file, capsys):
    assert tag_delete(_args(data_file, id="bug")) == 0
    assert "Deleted tag bug" in capsys.readouterr().out
    remote = _reload(data_file)
    assert "t1" not in remote.tags
    assert remote.card_tags.get("C", []) == []
