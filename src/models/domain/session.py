"""Session domain model"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class Session:
    """
    One logical period of activity.

    Immutable: a new activity period replaces the session, it never edits it.
    """

    id: str
    started_at: datetime
    context: str

    @classmethod
    def create(cls, context: str, prefix: str = "session") -> "Session":
        now = datetime.now(timezone.utc)
        token = f"{prefix}_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"
        return cls(id=token, started_at=now, context=context)
