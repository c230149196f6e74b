"""
Tests for engine logging setup
"""

import logging
from unittest.mock import MagicMock

import pytest

from clinic_availability import create_availability_service
from clinic_availability.config import AvailabilityConfig
from clinic_availability.utils.logging_config import (
    ENGINE_LOGGER,
    NOISY_LOGGERS,
    configure_logging,
    resolve_level,
)


@pytest.fixture
def clean_loggers():
    root = logging.getLogger()
    engine = logging.getLogger(ENGINE_LOGGER)
    saved = (root.handlers[:], root.level, engine.level)
    yield root
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    engine.setLevel(saved[2])


class TestConfigureLogging:
    """Test root and engine logger setup"""

    def test_force_replaces_handlers(self, clean_loggers):
        configure_logging(logging.DEBUG, force=True)

        assert len(clean_loggers.handlers) == 1
        assert clean_loggers.level == logging.DEBUG

    def test_existing_handlers_kept_but_engine_level_applied(self, clean_loggers):
        marker = logging.NullHandler()
        clean_loggers.handlers[:] = [marker]

        engine = configure_logging("warning")

        assert clean_loggers.handlers == [marker]
        assert engine.name == ENGINE_LOGGER
        assert engine.level == logging.WARNING

    def test_noisy_loggers_quieted(self, clean_loggers):
        configure_logging(force=True)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_resolve_level(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError):
            resolve_level("chatty")


class TestServiceFactory:
    """Test create_availability_service wiring"""

    def test_config_log_level_reaches_engine_logger(self, clean_loggers):
        config = AvailabilityConfig(log_level="DEBUG", supabase_schema="healthcare")

        service = create_availability_service(MagicMock(), config=config)

        assert service.config is config
        assert service.repository.schema == "healthcare"
        assert logging.getLogger(ENGINE_LOGGER).level == logging.DEBUG
        assert logging.getLogger("clinic_availability.services.availability_service").getEffectiveLevel() == logging.DEBUG
