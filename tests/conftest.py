"""Pytest configuration for rulefilter tests.

Shared configuration for all test suites.
"""

import logging
import pathlib
import sys

import pytest

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Add project root to path for all tests to ensure imports work
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))


@pytest.fixture
def bounded_oracle():
    """Exact oracle over [-4, 4]; no solver needed."""
    from rulefilter.rules.backends.bounded import BoundedOracle

    return BoundedOracle()


@pytest.fixture
def z3_oracle():
    """The z3 oracle; tests using it are skipped when z3 is missing."""
    pytest.importorskip("z3")
    from rulefilter.rules.backends.z3 import Z3Oracle

    return Z3Oracle()


@pytest.fixture(autouse=True)
def _restore_logging():
    """Detach handlers a test installed through ``configure_loggers``."""
    yield
    from rulefilter.core import reset_loggers

    reset_loggers()


@pytest.fixture
def rule_file(tmp_path):
    """Factory writing a rule file into the test's temporary directory."""

    def write(text: str, name: str = "rules.txt") -> pathlib.Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return write


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "z3: mark test as requiring the z3 solver")
