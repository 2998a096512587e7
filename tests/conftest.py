"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all tests in the test suite.
"""

import pytest
from pathlib import Path

from src.core.config import Config
from tests.fakes import FakeClock


# ============================================================================
# Paths and Directories
# ============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def test_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


# ============================================================================
# Time
# ============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    """Return a fresh FakeClock starting at t=0."""
    return FakeClock()


# ============================================================================
# Configuration
# ============================================================================

@pytest.fixture
def harvest_config(tmp_path: Path, monkeypatch) -> Config:
    """
    Config built from a throwaway .env with short, test-friendly timings.
    """
    values = {
        "BASE_URL": "https://console.test",
        "MAX_PAGES": "50",
        "OUTPUT_DIR": str(tmp_path / "out"),
        "SESSION_PATH": str(tmp_path / "session"),
        "LOG_DIR": str(tmp_path / "logs"),
        "WAIT_AFTER_SWITCH_MS": "0",
        "READY_TIMEOUT_MS": "3000",
        "READY_STABLE_MS": "1000",
        "POST_READY_DELAY_MS": "0",
        "BOTS_READY_TIMEOUT_MS": "3000",
        "BOTS_STABLE_MS": "1000",
        "BOTS_POST_READY_DELAY_MS": "0",
        "BOTS_MAX_ATTEMPTS": "2",
        "ADVANCE_TIMEOUT_MS": "1000",
        "PAGE_DELAY_MIN_MS": "0",
        "PAGE_DELAY_MAX_MS": "0",
        "LISTS_FILTER": "",
    }
    # load_dotenv writes into os.environ; route it through monkeypatch so it is undone
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    for var in ("MODE", "HEADLESS", "MARKUP_FILE", "LOG_LEVEL", "OUTPUT_FILE"):
        monkeypatch.delenv(var, raising=False)

    env = tmp_path / ".env"
    env.write_text("\n".join(f"{k}={v}" for k, v in values.items()), "utf-8")
    return Config(env_path=env)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "e2e: mark test as an end-to-end test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "browser: mark test as needing a real browser"
    )
