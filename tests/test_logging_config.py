"""
Tests for loguru configuration.
Run with: pytest tests/test_logging_config.py -v
"""
import pytest
from loguru import logger
from treeview.logging_config import LEVEL_ENV, configure_logging


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def messages(monkeypatch):
    monkeypatch.delenv(LEVEL_ENV, raising=False)
    captured = []
    yield captured
    logger.remove()


# ── Test: Levels ─────────────────────────────────────────────────────

def test_default_level_is_info(messages):
    configure_logging(sink=messages.append)
    logger.debug("hidden")
    logger.info("shown")
    assert len(messages) == 1
    assert "treeview | shown" in messages[0]


def test_verbose_enables_debug(messages):
    configure_logging(verbose=True, sink=messages.append)
    logger.debug("rebuilt")
    assert len(messages) == 1


def test_environment_overrides_level(messages, monkeypatch):
    monkeypatch.setenv(LEVEL_ENV, "warning")
    configure_logging(verbose=True, sink=messages.append)
    logger.info("ignored")
    logger.warning("Node '9.9' does not exist")
    assert len(messages) == 1
    assert "does not exist" in messages[0]
