"""Shared pytest fixtures for babbler tests."""

import tempfile
from pathlib import Path

import pytest

from babbler.config import BabblerConfig
from babbler.engine import BabblerEngine


@pytest.fixture
def temp_project():
    """Create a temporary project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_project):
    """Create a test configuration."""
    return BabblerConfig(
        project_name="test-project",
        project_root=temp_project,
    )


@pytest.fixture
def engine(config):
    """Create a test engine with proper cleanup."""
    eng = BabblerEngine(config)
    yield eng
    # Cleanup: close the database connection before the temp dir goes away
    eng.close()


@pytest.fixture
def engine_factory(temp_project):
    """Factory fixture that creates engines and ensures cleanup.

    Usage:
        def test_example(engine_factory, temp_project):
            config = BabblerConfig(project_root=temp_project, title_size=10)
            engine = engine_factory(config)
    """
    engines = []

    def _create(config):
        eng = BabblerEngine(config)
        engines.append(eng)
        return eng

    yield _create

    for eng in engines:
        eng.close()


@pytest.fixture
def make_entry(engine):
    """Create an entry with sensible defaults; keyword arguments override them."""

    def _make(**kwargs):
        fields = {
            "category": "books",
            "sub_category": "fiction",
            "title": "Untitled",
            "content": "Some content",
            "author": "alice",
        }
        fields.update(kwargs)
        return engine.store.create(**fields)

    return _make
