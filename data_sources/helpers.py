"""
Shared helpers for parsing external feed payloads.
"""

import re
from typing import Any, Dict, Iterable, Optional


def extract_number(data: Dict, keys: Iterable[str], default: Optional[float] = None) -> Optional[float]:
    """
    Extract the first numeric value found under any of the given keys.

    Values may be numbers or strings such as '150' or '150 SFI'.
    """
    if not isinstance(data, dict):
        return default

    for key in keys:
        if key not in data:
            continue
        value = to_float(data[key])
        if value is not None:
            return value
    return default


def to_float(value: Any) -> Optional[float]:
    """Convert a feed value to float, returning None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r'-?\d+(?:\.\d+)?', value)
        if match:
            return float(match.group())
    return None


def band_from_key(key: Any) -> Optional[int]:
    """Convert a band label such as '20m' or '20' to meters."""
    digits = re.sub(r'[^0-9]', '', str(key))
    if not digits:
        return None
    return int(digits)


def latest_record(payload: Any) -> Optional[Dict]:
    """
    Pick the most recent record from a feed payload.

    Objects are returned as-is. Lists of objects return the last object;
    header-row tables (a list of column names followed by rows) are zipped
    into a dict for the last row.
    """
    if isinstance(payload, dict):
        return payload

    if isinstance(payload, list) and payload:
        last = payload[-1]
        if isinstance(last, dict):
            return last
        header = payload[0]
        if (len(payload) > 1 and isinstance(header, list) and isinstance(last, list)
                and all(isinstance(column, str) for column in header)):
            return dict(zip(header, last))

    return None
