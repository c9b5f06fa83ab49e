"""Shared pytest fixtures for depsnoop tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def make_tree(tmp_path):
    """Create files under tmp_path from a ``{relative_path: content}`` mapping."""

    def _make(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return tmp_path

    return _make
