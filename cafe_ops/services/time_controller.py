"""Clock shared by the session timer and the redemption engine.

Responsibilities:
- Provide "now" in Unix milliseconds
- Advance or set virtual time (front-desk demos, tests)
- Optionally freeze time so that it only moves when advanced
"""

import threading
import time
from typing import Optional

from cafe_ops.logging_config import get_logger
from cafe_ops.utils.durations import MILLIS_PER_DAY, MILLIS_PER_HOUR, MILLIS_PER_MINUTE, MILLIS_PER_SECOND

logger = get_logger(__name__)


def _wall_clock_millis() -> int:
    return int(time.time() * 1000)


class TimeController:
    """Virtual clock.

    Unfrozen, it follows the wall clock plus an offset that only grows.
    Frozen, it reports a fixed virtual time that moves only through
    advance_time / set_time.

    Args:
        frozen: Freeze virtual time
        start_time_millis: Initial virtual time (defaults to wall clock now)
    """

    def __init__(self, frozen: bool = False, start_time_millis: Optional[int] = None) -> None:
        self._lock = threading.RLock()
        self._frozen = frozen
        self._offset_millis = 0
        self._frozen_time_millis = start_time_millis if start_time_millis is not None else _wall_clock_millis()
        if not frozen and start_time_millis is not None:
            self._offset_millis = start_time_millis - _wall_clock_millis()

        logger.info(
            "time_controller_initialized",
            frozen=frozen,
            now_millis=self.now_millis(),
        )

    @property
    def frozen(self) -> bool:
        return self._frozen

    def now_millis(self) -> int:
        """Current time as Unix timestamp in milliseconds."""
        with self._lock:
            if self._frozen:
                return self._frozen_time_millis
            return _wall_clock_millis() + self._offset_millis

    def _shift(self, millis: int) -> None:
        if self._frozen:
            self._frozen_time_millis += millis
        else:
            self._offset_millis += millis

    def advance_time(
            self,
            days: int = 0,
            hours: int = 0,
            minutes: int = 0,
            seconds: int = 0,
    ) -> dict:
        """Move the clock forward.

        Returns:
            Dictionary with old_time_millis, new_time_millis and time_advanced_millis

        Raises:
            ValueError: if any value is negative
        """
        if days < 0 or hours < 0 or minutes < 0 or seconds < 0:
            raise ValueError("Cannot advance time backwards, negative values are not allowed.")

        millis_to_advance = (
            days * MILLIS_PER_DAY
            + hours * MILLIS_PER_HOUR
            + minutes * MILLIS_PER_MINUTE
            + seconds * MILLIS_PER_SECOND
        )

        with self._lock:
            old_time = self.now_millis()
            self._shift(millis_to_advance)
            new_time = old_time + millis_to_advance

        if millis_to_advance:
            logger.info(
                "time_advanced",
                old_time_millis=old_time,
                new_time_millis=new_time,
                advanced_millis=millis_to_advance,
            )

        return {
            "old_time_millis": old_time,
            "new_time_millis": new_time,
            "time_advanced_millis": millis_to_advance,
        }

    def set_time(self, timestamp_millis: int) -> dict:
        """Jump to ``timestamp_millis``.

        Raises:
            ValueError: If the timestamp lies before the current time
        """
        with self._lock:
            old_time = self.now_millis()
            if timestamp_millis < old_time:
                raise ValueError(
                    f"cannot set time backwards, current: {old_time}, requested: {timestamp_millis}"
                )
            self._shift(timestamp_millis - old_time)

        logger.info("time_set", old_time_millis=old_time, new_time_millis=timestamp_millis)

        return {
            "old_time_millis": old_time,
            "new_time_millis": timestamp_millis,
            "time_advanced_millis": timestamp_millis - old_time,
        }

    def reset_time(self) -> dict:
        """Return to the wall clock and drop any offset."""
        with self._lock:
            old_time = self.now_millis()
            self._offset_millis = 0
            self._frozen_time_millis = _wall_clock_millis()
            new_time = self.now_millis()

        logger.info("time_reset", old_time_millis=old_time, new_time_millis=new_time)

        return {
            "old_time_millis": old_time,
            "new_time_millis": new_time,
        }


_time_controller_instance: Optional[TimeController] = None
_controller_lock = threading.Lock()


def get_time_controller() -> TimeController:
    """Get global clock, configured from the ``clock`` section of cafe.yaml."""
    global _time_controller_instance
    if _time_controller_instance is None:
        with _controller_lock:
            if _time_controller_instance is None:
                from cafe_ops.config import get_config

                settings = get_config().clock_settings
                _time_controller_instance = TimeController(
                    frozen=settings.frozen,
                    start_time_millis=settings.start_time_millis,
                )
    return _time_controller_instance


def reset_time_controller() -> None:
    global _time_controller_instance
    with _controller_lock:
        _time_controller_instance = None
