"""
Human-readable formatting helpers shared by the reporters.
"""

import re
from typing import List, Union

_SI_UNITS = "KMGTPE"
_IEC_UNITS = ['B', 'KiB', 'MiB', 'GiB', 'TiB', 'PiB', 'EiB']


def format_bytes(b: int) -> str:
    """Format bytes to human readable (e.g. ``1.1 TB``)."""
    if b is None:
        return "0 B"
    if b < 1024:
        return f"{b} B"
    div, exp = 1024, 0
    n = b // 1024
    while n >= 1024 and exp < len(_SI_UNITS) - 1:
        div *= 1024
        exp += 1
        n //= 1024
    return f"{b / div:.1f} {_SI_UNITS[exp]}B"


def format_ibytes(b: int) -> str:
    """Format bytes with IEC units (e.g. ``1.5 GiB``)."""
    if not b:
        return "0 B"
    if b < 10:
        return f"{b} B"
    value = float(b)
    for unit in _IEC_UNITS:
        if value < 1024:
            if unit == 'B':
                return f"{int(value)} B"
            return f"{value:.1f} {unit}" if value < 10 else f"{value:.0f} {unit}"
        value /= 1024
    return f"{value:.0f} ZiB"


def humanize_duration(seconds: Union[int, float]) -> str:
    """Format an uptime in seconds as days/hours/minutes/seconds."""
    seconds = int(seconds or 0)
    if seconds < 60:
        return f"{seconds} seconds"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes} minutes {secs} seconds"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours} hours {minutes} minutes {secs} seconds"
    days, hours = divmod(hours, 24)
    return f"{days} days {hours} hours {minutes} minutes {secs} seconds"


def natural_sort_key(value: str) -> List[Union[int, str]]:
    """Sort key that orders embedded numbers numerically (disk2 < disk10)."""
    return [int(part) if part.isdigit() else part
            for part in re.split(r'(\d+)', value)]


def truncate(name: str, width: int = 40) -> str:
    """Shorten a display name to ``width`` chars, marking the cut with ``...``."""
    if len(name) > width:
        return name[:width - 3] + "..."
    return name
