"""Unit tests for TimeController."""

from unittest.mock import MagicMock, patch

import pytest

from cafe_ops.services.time_controller import TimeController, get_time_controller, reset_time_controller
from cafe_ops.utils.durations import MILLIS_PER_DAY

START = 1_700_000_000_000


@pytest.fixture
def frozen_clock():
    return TimeController(frozen=True, start_time_millis=START)


class TestFrozenClock:
    def test_time_does_not_move(self, frozen_clock):
        assert frozen_clock.frozen
        assert frozen_clock.now_millis() == START
        assert frozen_clock.now_millis() == START

    def test_advance_time(self, frozen_clock):
        result = frozen_clock.advance_time(days=1, hours=2, minutes=3, seconds=4)

        advanced = MILLIS_PER_DAY + 2 * 3_600_000 + 3 * 60_000 + 4_000
        assert result == {
            "old_time_millis": START,
            "new_time_millis": START + advanced,
            "time_advanced_millis": advanced,
        }
        assert frozen_clock.now_millis() == START + advanced

    def test_advance_by_zero(self, frozen_clock):
        result = frozen_clock.advance_time()
        assert result["time_advanced_millis"] == 0
        assert frozen_clock.now_millis() == START

    @pytest.mark.parametrize("field", ["days", "hours", "minutes", "seconds"])
    def test_negative_rejected(self, frozen_clock, field):
        with pytest.raises(ValueError):
            frozen_clock.advance_time(**{field: -1})
        assert frozen_clock.now_millis() == START

    def test_set_time_forward(self, frozen_clock):
        result = frozen_clock.set_time(START + 5_000)

        assert result["time_advanced_millis"] == 5_000
        assert frozen_clock.now_millis() == START + 5_000

    def test_set_time_backwards_rejected(self, frozen_clock):
        with pytest.raises(ValueError, match="backwards"):
            frozen_clock.set_time(START - 1)
        assert frozen_clock.now_millis() == START

    def test_reset_returns_to_wall_clock(self, frozen_clock):
        frozen_clock.advance_time(days=30)
        with patch("cafe_ops.services.time_controller.time.time", return_value=1_800_000_000.0):
            frozen_clock.reset_time()
            assert frozen_clock.now_millis() == 1_800_000_000_000


class TestOffsetClock:
    @patch("cafe_ops.services.time_controller.time.time")
    def test_follows_wall_clock(self, mock_time):
        mock_time.return_value = 1_000.0
        clock = TimeController()

        mock_time.return_value = 1_002.5
        assert clock.now_millis() == 1_002_500

    @patch("cafe_ops.services.time_controller.time.time")
    def test_advance_adds_offset(self, mock_time):
        mock_time.return_value = 1_000.0
        clock = TimeController()
        clock.advance_time(hours=1)

        mock_time.return_value = 1_010.0
        assert clock.now_millis() == 1_010_000 + 3_600_000

    @patch("cafe_ops.services.time_controller.time.time")
    def test_start_time_sets_offset(self, mock_time):
        mock_time.return_value = 1_000.0
        clock = TimeController(start_time_millis=START)

        mock_time.return_value = 1_001.0
        assert clock.now_millis() == START + 1_000

    @patch("cafe_ops.services.time_controller.time.time")
    def test_reset_drops_offset(self, mock_time):
        mock_time.return_value = 1_000.0
        clock = TimeController()
        clock.advance_time(days=2)

        clock.reset_time()

        assert clock.now_millis() == 1_000_000


class TestGlobalClock:
    def test_singleton_uses_clock_settings(self):
        config = MagicMock()
        config.clock_settings.frozen = True
        config.clock_settings.start_time_millis = START

        reset_time_controller()
        try:
            with patch("cafe_ops.config.get_config", return_value=config):
                clock = get_time_controller()
                assert clock.frozen
                assert clock.now_millis() == START
                assert get_time_controller() is clock
        finally:
            reset_time_controller()
