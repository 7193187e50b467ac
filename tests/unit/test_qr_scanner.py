"""Unit tests for the single-shot QR scan session."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from cafe_ops.services.qr_scanner import QrScanSession, ScanState, get_scan_session, reset_scan_sessions


class TestQrScanSession:
    def test_idle_until_started(self):
        handler = MagicMock()
        session = QrScanSession(handler)

        assert session.state == ScanState.IDLE
        assert session.on_decoded("CAFEOS-1-abc") is None
        handler.assert_not_called()

    def test_first_decode_wins(self):
        handler = MagicMock(return_value="validated")
        session = QrScanSession(handler)
        session.start()

        assert session.on_decoded(" CAFEOS-1-abc\n") == "validated"
        assert session.on_decoded("CAFEOS-1-abc") is None
        assert session.on_decoded("CAFEOS-2-def") is None

        handler.assert_called_once_with("CAFEOS-1-abc")
        assert session.state == ScanState.IDLE

    def test_restart_allows_another_scan(self):
        handler = MagicMock()
        session = QrScanSession(handler)

        session.start()
        session.on_decoded("first")
        session.start()
        session.on_decoded("second")

        assert [c.args[0] for c in handler.call_args_list] == ["first", "second"]

    def test_stop_discards_decodes(self):
        handler = MagicMock()
        session = QrScanSession(handler)
        session.start()
        session.stop()

        assert not session.is_scanning
        assert session.on_decoded("late frame") is None
        handler.assert_not_called()

    def test_manual_entry_stops_scanning(self):
        handler = MagicMock(return_value="manual")
        session = QrScanSession(handler)
        session.start()

        assert session.submit_manual("  CAFEOS-9-xyz ") == "manual"
        assert session.on_decoded("CAFEOS-9-xyz") is None

        handler.assert_called_once_with("CAFEOS-9-xyz")

    def test_handler_errors_propagate(self):
        session = QrScanSession(MagicMock(side_effect=LookupError("not found")))
        session.start()

        with pytest.raises(LookupError):
            session.on_decoded("bad")
        assert session.state == ScanState.IDLE

    def test_concurrent_decodes_call_handler_once(self):
        handler = MagicMock()
        session = QrScanSession(handler)
        session.start()
        barrier = threading.Barrier(8)

        def decode():
            barrier.wait()
            session.on_decoded("CAFEOS-1-abc")

        threads = [threading.Thread(target=decode) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert handler.call_count == 1


class TestDeskSessions:
    @pytest.fixture(autouse=True)
    def clean_sessions(self):
        reset_scan_sessions()
        yield
        reset_scan_sessions()

    def test_one_session_per_desk(self):
        assert get_scan_session("admin-1") is get_scan_session("admin-1")
        assert get_scan_session("admin-1") is not get_scan_session("manager-1")

    def test_reset_drops_sessions(self):
        session = get_scan_session("admin-1")
        session.start()

        reset_scan_sessions()

        fresh = get_scan_session("admin-1")
        assert fresh is not session
        assert fresh.state == ScanState.IDLE

    @patch("cafe_ops.services.qr_scanner.get_redemption_engine")
    def test_decode_validates_through_engine(self, mock_get_engine):
        mock_get_engine.return_value.validate.return_value = "eligible"
        session = get_scan_session("admin-1")
        session.start()

        assert session.on_decoded(" CAFEOS-1-abc ") == "eligible"
        assert session.on_decoded("CAFEOS-1-abc") is None

        mock_get_engine.return_value.validate.assert_called_once_with("CAFEOS-1-abc")
