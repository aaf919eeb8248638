"""Test configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pytest import Config

# Must be set before pinmint modules read settings or build the engine
os.environ["TESTING"] = "true"
os.environ.setdefault("ENVIRONMENT", "test")

project_dir = Path(__file__).parent.parent
env_test_file = project_dir / ".env.test"
if env_test_file.exists():
    load_dotenv(env_test_file, override=True)

from pinmint.core.logging import configure_logging  # noqa: E402

pytest_plugins: list[str] = [
    "tests.fixtures.chain",
    "tests.fixtures.db",
    "tests.fixtures.api",
]


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    configure_logging(testing=True, level="debug")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
