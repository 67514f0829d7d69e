# src/config/loader.py
"""
Настройки клиента поездок.

Значения читаются из config/config.json (плоские ключи, раскладываются по
секциям по именам полей). Часть ключей можно переопределить переменными
окружения, см. ENV_OVERRIDABLE.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ФАЙЛЫ
# =============================================================================

def get_project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def get_config_path() -> Path:
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Сырой config.json; отсутствие файла считается ошибкой развёртывания."""
    path = get_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Нет файла конфигурации: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


# =============================================================================
# СЕКЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    PROJECT_NAME: str = "ride_client"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"


class LoggingSettings(BaseModel):
    """Вывод логов: уровень, формат консоли, ротация файла."""
    LOG_LEVEL: str = "DEBUG"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_format(cls, v: str) -> str:
        """Допустимы только colored и json."""
        if v not in ("colored", "json"):
            raise ValueError(f"Неизвестный формат логов: {v}")
        return v


class DomainSettings(BaseModel):
    """Настройки локализации."""
    DEFAULT_LANGUAGE: str = "en"
    SUPPORTED_LANGUAGES: list[str] = Field(default_factory=lambda: ["en", "ru"])


class ServicesSettings(BaseModel):
    """Адреса внешних сервисов поездок и водителей."""
    RIDE_SERVICE_URL: str = "http://localhost:8085/api/v1"
    DRIVER_SERVICE_URL: str = "http://localhost:8084/api/v1"
    HTTP_TIMEOUT: float = 10.0

    @field_validator("RIDE_SERVICE_URL", "DRIVER_SERVICE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Базовый URL хранится без завершающего слэша."""
        return v.rstrip("/")


class TimerSettings(BaseModel):
    """Периоды таймеров жизненного цикла поездки (в секундах)."""
    STATUS_POLL_INTERVAL: float = Field(default=5.0, gt=0)
    COUNTDOWN_TICK_INTERVAL: float = Field(default=1.0, gt=0)


class SessionSettings(BaseModel):
    """Идентификатор водителя для консольного запуска."""
    DRIVER_EMAIL: str = ""


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

# Ключи, которые переопределяются переменными окружения
ENV_OVERRIDABLE = (
    "ENVIRONMENT",
    "LOG_LEVEL",
    "RIDE_SERVICE_URL",
    "DRIVER_SERVICE_URL",
    "HTTP_TIMEOUT",
    "DRIVER_EMAIL",
)

# Плоский ключ config.json → секция Settings
SECTION_MODELS: dict[str, type[BaseModel]] = {
    "system": SystemSettings,
    "logging": LoggingSettings,
    "domain": DomainSettings,
    "services": ServicesSettings,
    "timers": TimerSettings,
    "session": SessionSettings,
}


def _section_values(model: type[BaseModel], flat: dict[str, Any]) -> dict[str, Any]:
    """Выбирает из плоского словаря поля одной секции; отсутствующие берутся из дефолтов модели."""
    return {name: flat[name] for name in model.model_fields if name in flat}


class Settings(BaseSettings):
    """
    Настройки клиента поездок.
    Секции собираются из плоского config.json; pydantic валидирует значения
    (интервалы таймеров > 0, формат логов, URL без завершающего слэша).
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)
    services: ServicesSettings = Field(default_factory=ServicesSettings)
    timers: TimerSettings = Field(default_factory=TimerSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_config_json(cls) -> "Settings":
        return cls.from_dict(load_config_json())

    @classmethod
    def from_dict(cls, config_data: dict[str, Any]) -> "Settings":
        """Собирает настройки из плоского словаря; ключи _comment_* пропускаются."""
        flat = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        for key in ENV_OVERRIDABLE:
            env_value = os.getenv(key)
            if env_value is not None:
                flat[key] = env_value

        sections = {name: model(**_section_values(model, flat)) for name, model in SECTION_MODELS.items()}
        return cls(**sections)


@lru_cache()
def get_settings() -> Settings:
    """Синглтон настроек; перед чтением config.json подгружает .env из корня проекта."""
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Общий экземпляр для модулей клиента
settings = get_settings()
