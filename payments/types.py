from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


@dataclass(frozen=True)
class AccessToken:
    """Short-lived Zoho access token. Always re-derivable from Credentials."""

    value: str
    issued_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.issued_at

    def __repr__(self):
        # Keep the secret out of logs and tracebacks
        return f"AccessToken(issued_at={self.issued_at.isoformat()})"


class SessionState(Enum):
    pending = "pending"
    succeeded = "succeeded"
    failed = "failed"


@dataclass(frozen=True)
class SessionStatus:
    status: SessionState
    payment_id: str | None = None
    reason: str | None = None
