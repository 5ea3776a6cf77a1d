"""Shared pytest fixtures for the tomlstruct test suite."""

from __future__ import annotations

import pytest

from tomlstruct.errors import DiagnosticRenderer, TomlError
from tomlstruct.parser import parse
from tomlstruct.source import SourceText


@pytest.fixture
def diagnose():
    """Parse a document that must fail and render its diagnostic without color."""

    def _diagnose(text: str) -> str:
        with pytest.raises(TomlError) as info:
            parse(text)
        renderer = DiagnosticRenderer(SourceText(text), color=False)
        return renderer.render(info.value.diagnostic())

    return _diagnose
