"""Front-desk QR scan session.

A camera decoder calls ``on_decoded`` for every frame it can read, often
several times for the same voucher. The session hands the first decode to
its handler and stops, so one scan produces one validation. Typed codes
take the same path through ``submit_manual``.

Each front-desk station (identified by the signed-in staff member) has
its own session, whose handler validates the code.
"""

import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional

from cafe_ops.logging_config import get_logger
from cafe_ops.services.redemption_engine import ValidationResult, get_redemption_engine
from cafe_ops.utils.token_generator import normalize_code

logger = get_logger(__name__)

DecodeHandler = Callable[[str], Any]


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class QrScanSession:
    """Single-shot scan session.

    Args:
        handler: Called with the trimmed code; its return value is passed back
    """

    def __init__(self, handler: DecodeHandler):
        self._handler = handler
        self._lock = threading.Lock()
        self._state = ScanState.IDLE
        self._ignored = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_scanning(self) -> bool:
        return self._state == ScanState.SCANNING

    def start(self) -> None:
        with self._lock:
            self._state = ScanState.SCANNING
            self._ignored = 0
        logger.debug("qr_scan_started")

    def stop(self) -> None:
        with self._lock:
            was_scanning = self._state == ScanState.SCANNING
            self._state = ScanState.IDLE
        if was_scanning:
            logger.debug("qr_scan_stopped", ignored_decodes=self._ignored)

    def on_decoded(self, text: str) -> Optional[Any]:
        """Handle a decoder result.

        Returns:
            The handler's result for the first decode, None for decodes
            that arrive while idle
        """
        with self._lock:
            if self._state != ScanState.SCANNING:
                self._ignored += 1
                return None
            self._state = ScanState.IDLE

        code = normalize_code(text)
        logger.info("qr_scan_decoded", qr_code=code)
        return self._handler(code)

    def submit_manual(self, text: str) -> Any:
        """Handle a typed code; stops any scan in progress."""
        self.stop()
        code = normalize_code(text)
        logger.info("qr_manual_entry", qr_code=code)
        return self._handler(code)


_sessions: Dict[str, QrScanSession] = {}
_sessions_lock = threading.Lock()


def _validate(code: str) -> ValidationResult:
    return get_redemption_engine().validate(code)


def get_scan_session(desk_id: str) -> QrScanSession:
    """Get the scan session of a front-desk station, creating it idle."""
    with _sessions_lock:
        session = _sessions.get(desk_id)
        if session is None:
            session = QrScanSession(_validate)
            _sessions[desk_id] = session
        return session


def reset_scan_sessions() -> None:
    """Drop every station's scan session."""
    with _sessions_lock:
        _sessions.clear()
