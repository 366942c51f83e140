"""Logging bootstrap: root handler once, domain level from the environment."""

from __future__ import annotations

import logging

import pytest

from stepform.logging_setup import DOMAIN_LOGGER, configure_logging


@pytest.fixture
def domain_logger():
    log = logging.getLogger(DOMAIN_LOGGER)
    previous = log.level
    yield log
    log.setLevel(previous)


def test_domain_level_follows_environment(monkeypatch, domain_logger):
    monkeypatch.setenv("STEPFORM_LOG_LEVEL", "debug")
    configure_logging()
    assert domain_logger.level == logging.DEBUG
    assert logging.getLogger("stepform.logic.controller").getEffectiveLevel() == logging.DEBUG


def test_domain_level_defaults_to_info(monkeypatch, domain_logger):
    monkeypatch.delenv("STEPFORM_LOG_LEVEL", raising=False)
    configure_logging()
    assert domain_logger.level == logging.INFO


def test_root_handlers_are_not_duplicated():
    configure_logging()
    before = list(logging.getLogger().handlers)
    configure_logging()
    assert logging.getLogger().handlers == before
