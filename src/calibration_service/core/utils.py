"""
Core utility functions shared across calibration service modules.
"""

import uuid
from datetime import UTC, datetime

DEFAULT_ID_LENGTH = 12


def generate_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """
    Create a short random hex identifier.

    Args:
        length: Number of hex characters (at most 32).

    Returns:
        A random identifier of the requested length.
    """
    if not (0 < length <= 32):
        raise ValueError(f"length must be in (0, 32], got {length}")
    return uuid.uuid4().hex[:length]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)
