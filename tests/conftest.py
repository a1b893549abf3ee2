"""
Pytest configuration and fixtures for d20-rules tests.
"""

import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing d20_rules
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from d20_rules.effects import EffectAggregator  # noqa: E402
from d20_rules.rulebooks.catalog import RuleCatalog  # noqa: E402


FIXTURES_DIR = Path(__file__).parent / "fixtures" / "rulebooks"


@pytest.fixture(scope="session")
def catalog() -> RuleCatalog:
    """SRD-only catalog, shared by every test (catalogs are read-only)."""
    return RuleCatalog.srd()


@pytest.fixture
def aggregator(catalog) -> EffectAggregator:
    return EffectAggregator(catalog)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR
