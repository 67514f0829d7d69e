# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Границы оценки водителя (звёзды)
MIN_RATING_VALUE = 1
MAX_RATING_VALUE = 5

# Значение черновика оценки до выбора пользователем
UNRATED_VALUE = 0

DEFAULT_LOGGER_NAME = "ride_client"
