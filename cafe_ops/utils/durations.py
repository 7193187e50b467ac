"""Duration helpers.

Parses the ISO 8601 validity periods used in the service catalog and
renders session durations for the front desk.
"""

import re

# Milliseconds in common time units
MILLIS_PER_SECOND = 1000
MILLIS_PER_MINUTE = 60 * MILLIS_PER_SECOND
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR
MILLIS_PER_WEEK = 7 * MILLIS_PER_DAY
MILLIS_PER_MONTH = 30 * MILLIS_PER_DAY  # Matches the 30 day-units of a monthly pass
MILLIS_PER_YEAR = 365 * MILLIS_PER_DAY

_UNIT_MILLIS = {
    "D": MILLIS_PER_DAY,
    "W": MILLIS_PER_WEEK,
    "M": MILLIS_PER_MONTH,
    "Y": MILLIS_PER_YEAR,
}

_PERIOD_PATTERN = re.compile(r"^(\d+)?([DWMY])$")


def parse_period(period: str) -> int:
    """Parse an ISO 8601 duration string to milliseconds.

    Supports P[n]D, P[n]W, P[n]M (30 days) and P[n]Y (365 days).

    Args:
        period: Duration string (e.g., "P7D", "P1M")

    Returns:
        Duration in milliseconds

    Raises:
        ValueError: If the period string is invalid or unsupported

    Examples:
        >>> parse_period("P7D")
        604800000
        >>> parse_period("P1M")
        2592000000
    """
    if not period or not isinstance(period, str):
        raise ValueError("Period must be a non-empty string")

    period = period.strip().upper()

    if not period.startswith("P"):
        raise ValueError(f"Invalid period format: '{period}'. Must start with 'P'")

    duration_str = period[1:]
    if not duration_str:
        raise ValueError(f"Invalid period format: '{period}'. No duration specified")

    match = _PERIOD_PATTERN.match(duration_str)
    if not match:
        raise ValueError(
            f"Unsupported period format: '{period}'. "
            "Supported formats: P[n]D, P[n]W, P[n]M, P[n]Y"
        )

    number_str, unit = match.groups()
    number = int(number_str) if number_str else 1
    if number <= 0:
        raise ValueError(f"Period number must be positive, got: {number}")

    return number * _UNIT_MILLIS[unit]


def validate_period(period: str) -> bool:
    """Return True if ``period`` parses."""
    try:
        parse_period(period)
        return True
    except ValueError:
        return False


def format_elapsed(elapsed_millis: int) -> str:
    """Render a duration as HH:MM:SS.

    Negative input renders as 00:00:00. Hours are not wrapped at 24.

    Examples:
        >>> format_elapsed(70_000)
        '00:01:10'
        >>> format_elapsed(90_061_000)
        '25:01:01'
    """
    elapsed_millis = max(int(elapsed_millis), 0)
    hours = elapsed_millis // MILLIS_PER_HOUR
    minutes = (elapsed_millis % MILLIS_PER_HOUR) // MILLIS_PER_MINUTE
    seconds = (elapsed_millis % MILLIS_PER_MINUTE) // MILLIS_PER_SECOND
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def millis_to_minutes(millis: int) -> float:
    return millis / MILLIS_PER_MINUTE
