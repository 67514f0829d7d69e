# src/core/rides/time_math.py
"""
Перевод абсолютных целевых моментов в оставшиеся секунды.
Единственный источник значений для всех обратных отсчётов.
"""

from __future__ import annotations

import time
from typing import Callable

from src.common.localization import get_text

# Источник текущего времени в миллисекундах с эпохи
Clock = Callable[[], int]


def now_ms() -> int:
    """Текущее время (wall clock) в миллисекундах. Читается заново при каждом вызове."""
    return time.time_ns() // 1_000_000


def remaining_seconds(target_ms: int, current_ms: int) -> int:
    """
    Возвращает floor((target - now) / 1000).

    Отрицательный результат не обрезается: решение за вызывающим кодом.
    """
    return (target_ms - current_ms) // 1000


def clamp_remaining(target_ms: int, current_ms: int) -> int:
    """То же, что remaining_seconds, но не меньше нуля."""
    return max(0, remaining_seconds(target_ms, current_ms))


def format_countdown(seconds: int, lang: str = "en") -> str:
    """Форматирует остаток как «M minutes and S seconds»."""
    minutes, rest = divmod(max(0, seconds), 60)
    return get_text("COUNTDOWN_FORMAT", lang, minutes=minutes, seconds=rest)
