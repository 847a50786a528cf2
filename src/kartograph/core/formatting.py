"""
Display formatting for numbers and durations.

Durations use the home-world calendar from ``core.constants`` (6 h days,
426 d years).
"""

from kartograph.core.constants import ONE_DAY, ONE_HOUR, ONE_MINUTE, ONE_YEAR


def format_number(value: float) -> str:
    """
    Format a number for display with a metric suffix or scientific notation.

    Values above 1e12, and positive values below 0.01, use scientific
    notation. Values above 1e7 are shown in millions (``M``), above 1e4 in
    thousands (``k``). Everything else keeps two decimals.

    Examples
    --------
    >>> format_number(12.3456)
    '12.35 '
    >>> format_number(25000.0)
    '25.00 k'
    """
    unit = " "
    if value > 1e12 or 0.0 < value < 1e-2:
        return f"{value:.6e}{unit}"
    if value > 1e7:
        unit = " M"
        value /= 1e6
    elif value > 1e4:
        unit = " k"
        value /= 1e3
    return f"{value:,.2f}{unit}"


def format_duration(value: float) -> str:
    """
    Format a signed duration as ``[-]Y y,D d,H h,M m,S.SS s``.

    Leading components that are zero are omitted.

    Examples
    --------
    >>> format_duration(3725.5)
    '1 h,2 m,5.50 s'
    """
    result = ""
    if value < 0.0:
        result += "-"
        value = abs(value)

    for unit_seconds, suffix in (
        (ONE_YEAR, "y"),
        (ONE_DAY, "d"),
        (ONE_HOUR, "h"),
        (ONE_MINUTE, "m"),
    ):
        if value > unit_seconds:
            count = int(value) // int(unit_seconds)
            value -= count * unit_seconds
            result += f"{count} {suffix},"

    result += f"{value:,.2f} s"
    return result


def format_epoch(epoch: float) -> str:
    """
    Format an absolute epoch as a calendar date (year 1, day 1 at epoch 0).
    """
    return format_duration(epoch + ONE_YEAR + ONE_DAY)
