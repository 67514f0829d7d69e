# tests/core/rides/test_time_math.py
"""
Тесты перевода целевых моментов в оставшиеся секунды.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from src.core.rides.time_math import clamp_remaining, format_countdown, now_ms, remaining_seconds


class TestRemainingSeconds:
    """Тесты для remaining_seconds."""

    @pytest.mark.parametrize(
        "target, now, expected",
        [
            (10_000, 0, 10),
            (10_999, 0, 10),
            (999, 0, 0),
            (0, 0, 0),
            (-1, 0, -1),
            (0, 1, -1),
            (0, 1_000, -1),
            (0, 1_001, -2),
            (1_700_000_070_000, 1_700_000_010_000, 60),
        ],
    )
    def test_floor_of_difference(self, target: int, now: int, expected: int) -> None:
        """floor((target - now) / 1000), в том числе для отрицательной разницы."""
        assert remaining_seconds(target, now) == expected

    def test_not_clamped(self) -> None:
        """Отрицательный результат возвращается как есть."""
        assert remaining_seconds(0, 5_500) == -6

    def test_clamp_remaining_never_negative(self) -> None:
        assert clamp_remaining(0, 5_500) == 0
        assert clamp_remaining(5_500, 0) == 5


class TestNowMs:
    """Тесты для now_ms."""

    def test_reads_clock_on_every_call(self) -> None:
        with patch("src.core.rides.time_math.time.time_ns", side_effect=[1_000_000_000, 2_500_000_000]):
            assert now_ms() == 1_000
            assert now_ms() == 2_500


class TestFormatCountdown:
    """Тесты форматирования отсчёта."""

    def test_minutes_and_seconds(self) -> None:
        assert format_countdown(125, "en") == "2 minutes and 5 seconds"

    def test_zero(self) -> None:
        assert format_countdown(0, "en") == "0 minutes and 0 seconds"

    def test_negative_shown_as_zero(self) -> None:
        assert format_countdown(-3, "en") == "0 minutes and 0 seconds"

    def test_localized(self) -> None:
        assert format_countdown(61, "ru") == "1 мин. 1 сек."
