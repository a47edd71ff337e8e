import logging

import pytest

from riskdesk.logger import PACKAGE, get_logger, resolve_level, setup_logging


@pytest.mark.parametrize(
    "level,expected",
    [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), (logging.ERROR, logging.ERROR), ("loud", logging.INFO), (None, logging.INFO)],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_setup_logging_is_idempotent():
    logger = logging.getLogger(PACKAGE)
    before = list(logger.handlers)
    try:
        setup_logging("debug")
        setup_logging("warning")
        added = [h for h in logger.handlers if h not in before]
        assert len(added) <= 1
        assert logger.level == logging.WARNING
        assert logging.getLogger("werkzeug").level == logging.WARNING
    finally:
        for h in logger.handlers:
            if h not in before:
                logger.removeHandler(h)


def test_get_logger_is_namespaced():
    assert get_logger("journal").name == "riskdesk.journal"
