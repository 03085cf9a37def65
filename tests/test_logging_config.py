"""Tests for logging setup."""

import logging

from rich.logging import RichHandler

from repo_doctor.logging_config import LOGGER_NAME, setup_logging


class TestSetupLogging:
    def test_default_level(self):
        logger = setup_logging()
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.propagate is False

    def test_verbose(self):
        assert setup_logging(verbose=True).level == logging.DEBUG

    def test_quiet_wins(self):
        assert setup_logging(verbose=True, quiet=True).level == logging.ERROR

    def test_repeated_setup_keeps_one_handler(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_module_loggers_inherit(self):
        setup_logging(verbose=True)
        assert logging.getLogger("repo_doctor.analyzer").getEffectiveLevel() == logging.DEBUG
