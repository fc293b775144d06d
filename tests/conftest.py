"""
Pytest configuration and fixtures for gtfo-log-tracker tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing gtfo_log_tracker
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from gtfo_log_tracker.catalog import Catalog  # noqa: E402
from gtfo_log_tracker.models import Location, StoryLog  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_log(log_id: int, *names: str, rundown: int = 1, level: str = "A1") -> StoryLog:
    return StoryLog(
        id=log_id,
        locations=[Location(rundown=rundown, level=level, zones=[1], name=n) for n in names],
    )


@pytest.fixture
def catalog() -> Catalog:
    """A small catalog; 'DUP-NAME' is shared by logs 70 and 71."""
    return Catalog([
        make_log(5, "ABC-5X2-7QF"),
        make_log(9, "TKS-24H-L0G"),
        make_log(12, "DEC-8B9-LSI"),
        make_log(42, "KDS-DEEP", rundown=3),
        make_log(70, "DUP-NAME", "ONE-ONLY"),
        make_log(71, "DUP-NAME"),
    ])


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    d = tmp_path / "GTFO"
    d.mkdir()
    return d
