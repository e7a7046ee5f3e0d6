"""Shared pytest fixtures for the codeframe test suite."""

from __future__ import annotations

import pytest

from codeframe.config import Config
from codeframe.source import SimpleFiles


@pytest.fixture
def files():
    return SimpleFiles()


@pytest.fixture
def ascii_config():
    return Config(ascii_only=True)
