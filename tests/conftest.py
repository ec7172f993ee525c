"""
Pytest configuration for canaryscale tests.

Async tests are marked with `@pytest.mark.asyncio` and run on
pytest-asyncio's per-test event loop.
"""

import pytest

from canaryscale.logging import LoggingConfig


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug")
    yield
    config.update(log_level="error")


@pytest.fixture
def temp_log_directory(tmp_path) -> str:
    return str(tmp_path)
