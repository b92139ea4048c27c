"""Tests for Registry wiring and logging setup."""

import logging

import pytest

from gpsr_registry.app import Registry
from gpsr_registry.config.logging import configure_logging
from gpsr_registry.config.settings import Environment, LogLevel, Settings


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRegistryBuild:
    @pytest.mark.usefixtures("anyio_backend")
    def test_services_share_settings(self, session_factory, settings) -> None:
        registry = Registry.build(session_factory, settings)
        assert registry.settings is settings
        assert registry.session_factory is session_factory
        assert registry.engine is None

    @pytest.mark.anyio
    async def test_close_without_engine_is_noop(self, registry) -> None:
        await registry.close()

    @pytest.mark.anyio
    async def test_from_settings_owns_engine(self, restore_root_logger) -> None:
        settings = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite:///:memory:",
                            ENVIRONMENT=Environment.PROD)
        registry = Registry.from_settings(settings)
        assert registry.engine is not None
        assert registry.engine.dialect.name == "sqlite"
        assert registry.engine.echo is False
        await registry.close()


class TestConfigureLogging:
    def test_sets_root_level_and_single_handler(self, restore_root_logger) -> None:
        configure_logging(Settings(_env_file=None, LOG_LEVEL=LogLevel.WARNING,
                                   ENVIRONMENT=Environment.PROD))
        assert restore_root_logger.level == logging.WARNING
        assert len(restore_root_logger.handlers) == 1

    def test_json_output_in_production(self, restore_root_logger, capsys) -> None:
        configure_logging(Settings(_env_file=None, ENVIRONMENT=Environment.PROD))
        logging.getLogger("gpsr_registry.test").info("reassigned %s", "IMPORTER")
        err = capsys.readouterr().err
        assert '"event": "reassigned IMPORTER"' in err
        assert '"level": "info"' in err
