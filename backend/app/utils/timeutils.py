"""UTC clock helpers.

Timestamps are stored as naive UTC in ``DateTime`` columns. Values that enter
from the API may carry an offset (``2030-01-01T00:00:00Z``); they are folded to
naive UTC here before they are compared or persisted.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC. Naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
