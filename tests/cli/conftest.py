"""Shared fixtures for CLI tests."""

from argparse import Namespace

import pytest

from optikan.remote.memory import MemoryRemote

from ..conftest import _seed


def _args(data_file, **kwargs):
    """Namespace with the common options filled in."""
    defaults = {"data": str(data_file), "config": None, "json": False, "verbose": False, "board": None}
    defaults.update(kwargs)
    return Namespace(**defaults)


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    """YAML data file holding the seeded board; cwd has no config file."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "board.yaml"
    _seed(MemoryRemote()).save(path)
    return path


def _reload(data_file):
    return MemoryRemote.load(data_file)
