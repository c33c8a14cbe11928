"""
Unit tests for the loguru setup helpers.
"""

import pytest
from loguru import logger

from src.core import log_config
from src.core.log_config import set_log_level, setup_logging


@pytest.fixture(autouse=True)
def restore_handlers(monkeypatch):
    monkeypatch.setattr(log_config, "_stderr_handler_id", None)
    yield
    logger.remove()


def test_setup_logging_filters_below_level(capsys):
    setup_logging(level="WARNING")

    logger.info("quiet line")
    logger.warning("loud line")

    err = capsys.readouterr().err
    assert "loud line" in err
    assert "quiet line" not in err


def test_set_log_level_swaps_stderr_handler(capsys):
    setup_logging(level="WARNING")
    set_log_level("debug")

    logger.debug("detail line")

    assert "detail line" in capsys.readouterr().err


def test_set_log_level_without_setup_installs_handler(capsys):
    set_log_level("INFO")

    logger.info("first line")

    assert log_config._stderr_handler_id is not None
    assert "first line" in capsys.readouterr().err
