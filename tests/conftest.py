"""
Test Configuration
==================

Pytest fixtures shared by unit and integration tests.
"""

import os

os.environ.setdefault("TIER_RENDER_ENVIRONMENT", "testing")

import io
from pathlib import Path
from typing import Dict

import pytest
from pydantic_settings import SettingsConfigDict

from tier_render.config.logging import setup_logging
from tier_render.config.settings import Settings
from tier_render.core.error_log import ErrorLog
from tier_render.core.progress import ProgressTracker

from tests.utils.helpers import write_dataset
from tests.utils.mocks import DocumentBehavior, MockRenderEngine


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    log_level: str = "DEBUG"
    max_concurrency: int = 2
    page_timeout_ms: int = 300
    screenshot_timeout_ms: int = 100
    task_timeout_s: float = 5.0
    progress_update_interval_s: float = 0.0

    model_config = SettingsConfigDict(env_file=".env.test")


@pytest.fixture(scope="session", autouse=True)
def configure_logging() -> None:
    setup_logging(TestSettings())


@pytest.fixture
def test_settings(tmp_path: Path) -> TestSettings:
    """Settings rooted in a per-test temporary directory."""
    return TestSettings(dataset_dir=tmp_path / "dataset", output_dir=tmp_path / "output")


@pytest.fixture
def dataset(test_settings: TestSettings) -> Path:
    """Two tiers: ``a`` with three documents, ``b`` with one."""
    return write_dataset(
        test_settings.dataset_dir,
        {"a": ["1.html", "2.html", "3.html"], "b": ["only.html"]},
    )


@pytest.fixture
def behaviors() -> Dict[str, DocumentBehavior]:
    return {}


@pytest.fixture
def mock_engine(behaviors: Dict[str, DocumentBehavior]) -> MockRenderEngine:
    return MockRenderEngine(behaviors)


@pytest.fixture
def output_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def progress(output_stream: io.StringIO) -> ProgressTracker:
    return ProgressTracker(update_interval=0.0, bar_width=20, stream=output_stream)


@pytest.fixture
def error_log() -> ErrorLog:
    return ErrorLog()
