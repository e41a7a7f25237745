"""
Tolerant conversions for upstream payload fields, plus hashing and rounding
used by the cache and transformers.
"""
import hashlib
import json
import math
from typing import Any


def safe_str(value: Any, default: str = "") -> str:
    """``str(value)``, with None mapped to ``default``."""
    return default if value is None else str(value)


def safe_lower(value: Any) -> str:
    """Lowercased text of ``value``; None becomes ""."""
    return safe_str(value).lower()


def safe_int(value: Any, default: int = 0) -> int:
    """
    Integer from ints, floats and numeric strings ("12", "12.0").

    None, booleans, NaN/inf and anything unparsable give ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        pass
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number)


def safe_float(value: Any, default: float = 0.0) -> float:
    """Safely convert value to float; NaN and garbage become the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(number):
        return default
    return number


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


def content_hash(value: Any) -> str:
    """Stable sha256 of a JSON-serializable value, independent of key order."""
    encoded = json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
