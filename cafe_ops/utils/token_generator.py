"""QR token, payment reference and record id generation.

QR tokens are printed on vouchers and may be typed in by hand, so they
stay short and use only characters that survive manual entry.
"""

import re
import secrets
import string
import time
import uuid
from typing import Optional

from cafe_ops.config import get_config

_BASE36 = string.digits + string.ascii_lowercase

QR_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9]+-(\d{13})-[a-z0-9]{6,16}$")
REFERENCE_PATTERN = re.compile(r"^[A-Za-z0-9]+-(\d{13})-[A-Z0-9]{7}$")


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _now_millis() -> int:
    return int(time.time() * 1000)


def generate_qr_token(prefix: Optional[str] = None, timestamp_millis: Optional[int] = None) -> str:
    """Generate a unique QR token.

    Format: {prefix}-{epoch millis}-{13 base36 chars}
    Example: CAFEOS-1700000000000-k3j9qz1x8m2ab

    Args:
        prefix: Token prefix (defaults to tokens.qr_prefix from config)
        timestamp_millis: Embedded timestamp (defaults to wall-clock now)
    """
    if prefix is None:
        prefix = get_config().token_settings.qr_prefix
    if timestamp_millis is None:
        timestamp_millis = _now_millis()

    return f"{prefix}-{timestamp_millis}-{_random_base36(13)}"


def generate_payment_reference(prefix: Optional[str] = None, timestamp_millis: Optional[int] = None) -> str:
    """Generate a payment reference.

    Format: {prefix}-{epoch millis}-{7 upper-case base36 chars}
    Example: CAFEOS-1700000000000-K3J9QZ1
    """
    if prefix is None:
        prefix = get_config().token_settings.reference_prefix
    if timestamp_millis is None:
        timestamp_millis = _now_millis()

    return f"{prefix}-{timestamp_millis}-{_random_base36(7).upper()}"


def generate_id() -> str:
    """Opaque record id."""
    return str(uuid.uuid4())


def normalize_code(code: Optional[str]) -> str:
    """Scanned and typed codes are matched after trimming whitespace."""
    if not code:
        return ""
    return code.strip()


def validate_qr_token(token: str) -> bool:
    """Check that ``token`` looks like a generated QR token.

    Lookup never depends on this; it is used to warn about mistyped codes.
    """
    if not token or not isinstance(token, str):
        return False
    return QR_TOKEN_PATTERN.match(token) is not None


def validate_payment_reference(reference: str) -> bool:
    if not reference or not isinstance(reference, str):
        return False
    return REFERENCE_PATTERN.match(reference) is not None


def extract_token_timestamp(token: str) -> Optional[int]:
    """Timestamp embedded in a QR token, or None if the token is malformed."""
    if not validate_qr_token(token):
        return None
    match = QR_TOKEN_PATTERN.match(token)
    return int(match.group(1))
