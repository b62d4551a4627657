"""
Shared fixtures for the image-sorter test suite.
"""
from datetime import datetime
from pathlib import Path

import pytest

from image_sorter.stats import StatsAggregator


@pytest.fixture
def src(tmp_path: Path) -> Path:
    """Empty source directory."""
    d = tmp_path / "source"
    d.mkdir()
    return d


@pytest.fixture
def tgt(tmp_path: Path) -> Path:
    """Empty target directory."""
    d = tmp_path / "target"
    d.mkdir()
    return d


@pytest.fixture
def stats() -> StatsAggregator:
    return StatsAggregator()


@pytest.fixture
def fixed_date() -> datetime:
    return datetime(2024, 3, 15, 10, 30, 0)
