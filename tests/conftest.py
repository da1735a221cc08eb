from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from quickfind.app import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the global config file at a temp location for every test."""
    path = tmp_path / "quickfind_config.json"
    monkeypatch.setattr(config, "GLOBAL_CONFIG", path)
    return path
