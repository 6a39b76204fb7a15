"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from plainref.config import PlainRefConfig
from plainref.service import ConceptService

WIDGET_DOC = """\
***definitions***
- :widget:
  A :widget: has a :color:.
- :color:, :shade:

***functional specs***
Paint the :widget: with a :color:.
"""

ORDER_DOC = """\
***definitions***
- :order:

***functional specs***
Each :order: contains one :widget:.
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A directory holding two related documents and some noise."""
    tmp_path = tmp_path.resolve()
    (tmp_path / "widget.plain").write_text(WIDGET_DOC, encoding="utf-8")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "order.plain").write_text(ORDER_DOC, encoding="utf-8")
    (tmp_path / "notes.txt").write_text(":widget:\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def widget_doc() -> str:
    return WIDGET_DOC


@pytest.fixture
def test_config(workspace: Path) -> PlainRefConfig:
    """A PlainRefConfig rooted at the workspace fixture."""
    return PlainRefConfig(project_dir=workspace, roots=[workspace], debounce_delay=0.01)


@pytest.fixture
def service(test_config: PlainRefConfig) -> ConceptService:
    return ConceptService(test_config)
