"""Test configuration."""

import os
from typing import List

from pytest import Config

os.environ["TESTING"] = "true"

from lexsync.core.logging import configure_logging  # noqa: E402

pytest_plugins: List[str] = [
    "tests.fixtures.content_store",
    "tests.fixtures.api",
    "tests.fixtures.cache",
]


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    # Configure logging for test environment
    configure_logging(testing=True)

    # These are configured in pyproject.toml
    # asyncio_mode = "auto"
    # asyncio_default_fixture_loop_scope = "function"
