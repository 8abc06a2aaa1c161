"""X-Request-ID values for backend calls.

Each backend call carries a fresh id so a failing request can be matched to
the backend's logs. Ids start with the UTC issue time, which keeps them
sortable, and end with a random nanoid.
"""

from datetime import datetime, timezone
from typing import Optional

from nanoid import generate

REQUEST_ID_HEADER = "X-Request-ID"

_STAMP_FORMAT = "%Y%m%d%H%M%S"
_RANDOM_PART_SIZE = 12


def generate_request_id(issued_at: Optional[datetime] = None) -> str:
    """Return e.g. ``20260315143022_AbC123XyZ456`` for a call issued at ``issued_at`` (default: now)."""
    stamp = (issued_at or datetime.now(timezone.utc)).strftime(_STAMP_FORMAT)
    return f"{stamp}_{generate(size=_RANDOM_PART_SIZE)}"
