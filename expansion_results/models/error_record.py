from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""FetchErrorRecord model for failed backend requests.

One record per failed request against the Expansion Plan API. Records are
buffered during a run and written as JSON Lines with a fixed key set, so that
fallback-to-synthetic-data episodes can be audited after the fact.

Use status=-1 when no HTTP response was received (timeout, refused connection).
"""

__all__ = [
    "FetchErrorRecord",
]


@dataclass(frozen=True)
class FetchErrorRecord:
    """Structured record of one failed request.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        endpoint: Request path relative to the API base URL
        status: HTTP status code, or -1 for transport failures
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Server message or transport error text
    """
    timestamp: str
    endpoint: str
    status: int
    error_type: str  # TRANSPORT_ERROR | SERVER_ERROR | CLIENT_ERROR
    message: str

    @staticmethod
    def create(endpoint: str, status: int, error_type: str, message: str) -> FetchErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return FetchErrorRecord(
            timestamp=ts,
            endpoint=endpoint,
            status=status,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
