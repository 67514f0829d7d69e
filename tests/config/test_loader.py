# tests/config/test_loader.py
"""
Тесты для модуля загрузки конфигурации.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config.loader import (
    LoggingSettings,
    ServicesSettings,
    Settings,
    TimerSettings,
    get_config_path,
    get_project_root,
    load_config_json,
)


class TestPaths:
    """Тесты путей проекта."""

    def test_root_contains_src_and_config(self) -> None:
        root = get_project_root()

        assert (root / "src").exists()
        assert (root / "config").exists()

    def test_config_path(self) -> None:
        path = get_config_path()

        assert path.name == "config.json"
        assert path.parent.name == "config"


class TestLoadConfigJson:
    """Тесты для функции load_config_json."""

    def test_contains_required_keys(self) -> None:
        config = load_config_json()

        for key in ("RIDE_SERVICE_URL", "DRIVER_SERVICE_URL", "STATUS_POLL_INTERVAL", "COUNTDOWN_TICK_INTERVAL"):
            assert key in config

    def test_raises_file_not_found(self, tmp_path: Path) -> None:
        with patch("src.config.loader.get_config_path", return_value=tmp_path / "missing.json"):
            with pytest.raises(FileNotFoundError):
                load_config_json()


class TestSectionModels:
    """Валидация отдельных секций."""

    def test_timer_defaults(self) -> None:
        timers = TimerSettings()

        assert timers.STATUS_POLL_INTERVAL == 5.0
        assert timers.COUNTDOWN_TICK_INTERVAL == 1.0

    @pytest.mark.parametrize("value", [0, -1.0])
    def test_timer_interval_must_be_positive(self, value: float) -> None:
        with pytest.raises(ValidationError):
            TimerSettings(STATUS_POLL_INTERVAL=value)

    def test_service_urls_without_trailing_slash(self) -> None:
        services = ServicesSettings(RIDE_SERVICE_URL="http://rides.test/api/v1///")

        assert services.RIDE_SERVICE_URL == "http://rides.test/api/v1"

    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(LOG_FORMAT="xml")


class TestSettings:
    """Тесты сборки главного класса настроек."""

    def test_from_config_json(self) -> None:
        settings = Settings.from_config_json()

        assert settings.system.PROJECT_NAME == "ride_client"
        assert settings.domain.DEFAULT_LANGUAGE in settings.domain.SUPPORTED_LANGUAGES

    def test_from_dict(self, mock_config: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("ENVIRONMENT", "LOG_LEVEL", "RIDE_SERVICE_URL", "DRIVER_SERVICE_URL", "HTTP_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_dict(mock_config)

        assert settings.system.PROJECT_NAME == "ride_client_test"
        assert settings.logging.LOG_FORMAT == "json"
        assert settings.domain.DEFAULT_LANGUAGE == "ru"
        assert settings.services.RIDE_SERVICE_URL == "http://rides.test/api/v1"
        assert settings.services.HTTP_TIMEOUT == 3.0
        assert settings.timers.STATUS_POLL_INTERVAL == 5.0

    def test_env_overrides_services(self, mock_config: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RIDE_SERVICE_URL", "http://override.test/")
        monkeypatch.setenv("HTTP_TIMEOUT", "7.5")
        monkeypatch.setenv("DRIVER_EMAIL", "other@test.com")

        settings = Settings.from_dict(mock_config)

        assert settings.services.RIDE_SERVICE_URL == "http://override.test"
        assert settings.services.HTTP_TIMEOUT == 7.5
        assert settings.session.DRIVER_EMAIL == "other@test.com"

    def test_comment_keys_ignored(self, mock_config: dict[str, Any]) -> None:
        mock_config["_comment_extra"] = {"not": "a setting"}

        settings = Settings.from_dict(mock_config)

        assert not hasattr(settings, "_comment_extra")

    def test_missing_keys_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("ENVIRONMENT", "LOG_LEVEL", "RIDE_SERVICE_URL", "DRIVER_SERVICE_URL", "HTTP_TIMEOUT", "DRIVER_EMAIL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_dict({})

        assert settings.services.RIDE_SERVICE_URL == "http://localhost:8085/api/v1"
        assert settings.timers.COUNTDOWN_TICK_INTERVAL == 1.0
        assert settings.session.DRIVER_EMAIL == ""
