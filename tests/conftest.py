from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_zastepstwa_logger():
    """Drop handlers bound to per-test streams so they don't leak across tests."""
    yield
    logger = logging.getLogger("zastepstwa")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
