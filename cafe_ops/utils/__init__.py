"""Utility functions and helpers."""

from cafe_ops.utils.durations import (
    format_elapsed,
    millis_to_minutes,
    parse_period,
    validate_period,
)
from cafe_ops.utils.token_generator import (
    extract_token_timestamp,
    generate_id,
    generate_payment_reference,
    generate_qr_token,
    normalize_code,
    validate_payment_reference,
    validate_qr_token,
)

__all__ = [
    # Token generation
    "generate_qr_token",
    "generate_payment_reference",
    "generate_id",
    # Token validation
    "normalize_code",
    "validate_qr_token",
    "validate_payment_reference",
    "extract_token_timestamp",
    # Durations
    "parse_period",
    "validate_period",
    "format_elapsed",
    "millis_to_minutes",
]
