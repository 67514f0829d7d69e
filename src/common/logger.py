# src/common/logger.py
"""
Логирование клиента поездок.

Консоль: цветной текст (разработка) или JSON по строке на запись (сбор логов).
Файл: опциональная ротация по размеру, один хендлер на все логгеры.
Асинхронные хелперы log_* добавляют к записи место вызова и поля extra
(email клиента, момент создания поездки, фаза и т.п.).
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.common.constants import DEFAULT_LOGGER_NAME, TypeMsg


_GLOBAL_FILE_HANDLER: logging.Handler | None = None
_LOGGING_INITIALIZED: bool = False

_loggers: dict[str, logging.Logger] = {}

# Сторонние логгеры, шум которых не нужен на уровне DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore")

_LEVELS = {
    TypeMsg.DEBUG: logging.DEBUG,
    TypeMsg.INFO: logging.INFO,
    TypeMsg.WARNING: logging.WARNING,
    TypeMsg.ERROR: logging.ERROR,
    TypeMsg.CRITICAL: logging.CRITICAL,
}


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

class JsonFormatter(logging.Formatter):
    """Каждая запись пишется отдельным JSON-объектом в строке."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Читаемый цветной вывод для консоли."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def _caller_suffix(self, record: logging.LogRecord) -> str:
        extra_data = getattr(record, "extra_data", None) or {}
        func = extra_data.get("caller_function")
        if not func:
            return ""
        return (
            f" {self.GRAY}[{extra_data.get('caller_module')}.{func}() "
            f"{extra_data.get('caller_file')}:{extra_data.get('caller_line')}]{self.RESET}"
        )

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.GRAY)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = (
            f"{timestamp} {color}[{record.levelname}]{self.RESET}"
            f"{self._caller_suffix(record)} {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# НАСТРОЙКА ЛОГГЕРОВ
# =============================================================================

def setup_logging() -> None:
    """Однократная настройка: основной логгер клиента и уровни сторонних библиотек."""
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED:
        return
    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER_NAME)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _read_logging_settings() -> dict[str, Any]:
    """
    Секция logging из настроек. Если настройки недоступны или поле
    неверного типа (например, MagicMock в тестах), берётся значение по умолчанию.
    """
    defaults: dict[str, Any] = {
        "level": "DEBUG",
        "format": "colored",
        "to_file": False,
        "file_path": "logs/app.log",
        "max_bytes": 10485760,
        "backup_count": 5,
    }
    try:
        # Ленивый импорт: config не должен зависеть от логгера при загрузке
        from src.config import settings
        section = settings.logging
        values = {
            "level": section.LOG_LEVEL,
            "format": section.LOG_FORMAT,
            "to_file": section.LOG_TO_FILE,
            "file_path": section.LOG_FILE_PATH,
            "max_bytes": section.LOG_MAX_BYTES,
            "backup_count": section.LOG_BACKUP_COUNT,
        }
    except Exception:
        return defaults

    return {
        key: values[key] if isinstance(values[key], type(default)) else default
        for key, default in defaults.items()
    }


def _file_handler(config: dict[str, Any], formatter: logging.Formatter) -> logging.Handler:
    global _GLOBAL_FILE_HANDLER
    if _GLOBAL_FILE_HANDLER is None:
        log_path = Path(config["file_path"])
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _GLOBAL_FILE_HANDLER = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=config["max_bytes"],
            backupCount=config["backup_count"],
            encoding="utf-8",
        )
        _GLOBAL_FILE_HANDLER.setFormatter(formatter)
    return _GLOBAL_FILE_HANDLER


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Логгер с консольным (и, если включено, файловым) хендлером; создаётся один раз на имя."""
    if name in _loggers:
        return _loggers[name]

    config = _read_logging_settings()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config["level"].upper(), logging.DEBUG))

    if not logger.handlers:
        formatter: logging.Formatter = JsonFormatter() if config["format"] == "json" else ColoredFormatter()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if config["to_file"]:
            logger.addHandler(_file_handler(config, formatter))

        # Не дублируем записи в root
        logger.propagate = False

    _loggers[name] = logger
    return logger


# =============================================================================
# АСИНХРОННЫЕ ХЕЛПЕРЫ
# =============================================================================

def _get_caller_info(depth: int = 2) -> dict[str, Any]:
    """
    Место вызова лог-хелпера.
    depth=2: [0] _get_caller_info, [1] хелпер log_*, [2] вызывающий код.
    """
    frame = inspect.currentframe()
    try:
        target = frame
        for _ in range(depth):
            target = target.f_back if target else None
        if target is None:
            return {}

        module = inspect.getmodule(target)
        return {
            "caller_function": target.f_code.co_name,
            "caller_module": module.__name__ if module else "unknown",
            "caller_file": Path(target.f_code.co_filename).name,
            "caller_line": target.f_lineno,
        }
    finally:
        del frame


def _emit(
    logger: logging.Logger,
    type_msg: TypeMsg,
    message: str,
    extra: dict[str, Any] | None,
    exc_info: bool = False,
) -> None:
    record_extra = {"extra_data": {**_get_caller_info(depth=3), **(extra or {})}}
    level = _LEVELS.get(type_msg, logging.INFO)
    match level:
        case logging.DEBUG:
            logger.debug(message, extra=record_extra)
        case logging.WARNING:
            logger.warning(message, extra=record_extra)
        case logging.ERROR:
            logger.error(message, extra=record_extra, exc_info=exc_info)
        case logging.CRITICAL:
            logger.critical(message, extra=record_extra, exc_info=exc_info)
        case _:
            logger.info(message, extra=record_extra)


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Запись с уровнем type_msg (по умолчанию INFO).

    Args:
        message: Текст записи
        type_msg: Уровень
        logger_name: Имя логгера
        extra: Поля поездки и прочий контекст
    """
    _emit(get_logger(logger_name), TypeMsg(type_msg), message, extra)


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(get_logger(logger_name), TypeMsg.DEBUG, message, extra)


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(get_logger(logger_name), TypeMsg.WARNING, message, extra)


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """Запись уровня ERROR; exc_info=True добавляет трейсбек текущего исключения."""
    _emit(get_logger(logger_name), TypeMsg.ERROR, message, extra, exc_info=exc_info)
