from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.go_app import GoAppBuilder


@pytest.fixture
def go_app(tmp_path: Path) -> GoAppBuilder:
    """Provide a Go application builder rooted at the pytest tmp_path."""
    return GoAppBuilder(tmp_path)
