# src/config/__init__.py
"""
Настройки клиента поездок: адреса сервисов, периоды таймеров, логирование.
"""

from src.config.loader import (
    ServicesSettings,
    Settings,
    TimerSettings,
    get_settings,
    settings,
)

__all__ = ["ServicesSettings", "Settings", "TimerSettings", "get_settings", "settings"]
