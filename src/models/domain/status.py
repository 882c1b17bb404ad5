"""System status domain model"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional


@dataclass
class SystemStatus:
    """
    Operational status of the running daemon.

    One boolean flag per startup stage (keyed by stage key, in activation
    order) plus daemon-wide counters. Stage flags are mutated only by the
    startup sequencer, counters and timestamps only by periodic tasks.

    Persisted as a snapshot, never loaded back into a running instance.
    """

    stages: Dict[str, bool] = field(default_factory=dict)
    daemon_running: bool = False
    last_backup_at: Optional[datetime] = None
    chats_saved_count: int = 0
    started_at: Optional[datetime] = None

    def reset_stages(self, keys: Iterable[str]) -> None:
        """Register every stage as offline, preserving the given order."""
        self.stages = {key: False for key in keys}

    def mark_stage_online(self, key: str) -> None:
        self.stages[key] = True

    def offline_stages(self) -> List[str]:
        return [key for key, online in self.stages.items() if not online]

    def all_stages_online(self) -> bool:
        return bool(self.stages) and not self.offline_stages()

    def record_backup(self, at: datetime) -> None:
        self.chats_saved_count += 1
        self.last_backup_at = at

    def uptime_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since startup completed, 0 when not started"""
        if self.started_at is None:
            return 0.0
        now = now or datetime.now(timezone.utc)
        return max(0.0, (now - self.started_at).total_seconds())
