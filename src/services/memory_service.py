"""Memory service - chat ingestion and the bodies of the periodic tasks"""

from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from lifecycle.task_registry import TaskRegistry
from models.config import DaemonConfig
from models.domain import DaemonContext, MessageEntry, Session
from models.errors import PersistenceError
from models.events import (
    ChatBackedUpEvent,
    HealthIssuesEvent,
    SessionStartedEvent,
    StateSavedEvent,
)
from services.event_bus import EventBus
from services.persistence_service import BackupResult, PersistenceService
from utils.logger import get_logger, LogCategory

if TYPE_CHECKING:
    from services.periodic_scheduler import PeriodicScheduler

log = get_logger().for_category(LogCategory.MEMORY)
backup_log = log.with_category(LogCategory.BACKUP)
health_log = log.with_category(LogCategory.HEALTH)
session_log = log.with_category(LogCategory.SESSION)
chat_log = log.with_category(LogCategory.CHAT)


AUTO_DETECTED_CONTEXT = "auto_detected"
ACTIVITY_AFTER_IDLE_CONTEXT = "activity_after_idle"


class MemoryService:
    """
    Operates on the DaemonContext on behalf of the scheduler.

    Every periodic entry point absorbs PersistenceError (logged with its
    category) so a failed write only costs one firing.

    Example:
        service = MemoryService(context, persistence, config, event_bus)
        await service.add_chat_message("hello", sender="user")
        await service.backup_current_chat()
    """

    def __init__(
        self,
        context: DaemonContext,
        persistence: PersistenceService,
        config: DaemonConfig,
        event_bus: Optional[EventBus] = None,
    ):
        self.context = context
        self.persistence = persistence
        self.config = config
        self.event_bus = event_bus
        self.scheduler: Optional["PeriodicScheduler"] = None

    def attach_scheduler(self, scheduler: "PeriodicScheduler") -> None:
        """Let the health check see whether periodic tasks are running."""
        self.scheduler = scheduler

    async def _publish(self, event) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)

    # === Chat ingestion ===

    async def add_chat_message(self, content: str, sender: str = "user") -> MessageEntry:
        """
        Buffer one chat message under the active session.

        Starts a new session first if none is active or the current one
        went idle.
        """
        if self.context.session is None or self.context.session_idle:
            await self._replace_session(ACTIVITY_AFTER_IDLE_CONTEXT)

        entry = MessageEntry(
            timestamp=datetime.now(timezone.utc),
            sender=sender,
            content=content,
            session_id=self.context.session.id if self.context.session else None,
        )
        self.context.buffer.append(entry)
        self.context.touch()

        chat_log.debug(f"💬 Chat message buffered from {sender}")
        return entry

    # === Periodic: backup ===

    async def backup_current_chat(self) -> Optional[BackupResult]:
        """Flush the buffer to a new chats/ file if it holds anything."""
        try:
            result = await self.persistence.flush_chat_backup(
                self.context.buffer, self.context.session
            )
        except PersistenceError as e:
            backup_log.error(f"❌ Chat backup failed: {e.message}")
            return None

        if result is None:
            return None

        self.context.status.record_backup(result.timestamp)
        backup_log.info(
            f"💾 Chat backed up: {result.path.name}",
            messages=result.message_count,
            bytes=result.bytes_written,
        )
        await self._publish(ChatBackedUpEvent(result.path.name, result.message_count))
        return result

    # === Periodic: state save ===

    async def save_memory_state(self) -> bool:
        """Overwrite memory-state.json with the current snapshot."""
        try:
            await self.persistence.flush_state(
                self.context.status,
                self.context.session,
                self.config.to_public_dict(),
            )
        except PersistenceError as e:
            log.error(f"❌ Memory save failed: {e.message}")
            return False

        uptime = self.context.status.uptime_seconds()
        log.info("💾 Memory state saved", uptime=f"{uptime:.0f}s")
        await self._publish(StateSavedEvent(uptime))
        return True

    # === Periodic: health check ===

    async def perform_health_check(self) -> List[str]:
        """
        Report offline stages, a stopped scheduler and failed background tasks.

        Returns:
            List of issue descriptions (empty when healthy)
        """
        status = self.context.status
        issues = [f"{key} offline" for key in status.offline_stages()]

        if status.daemon_running and self.scheduler is not None and not self.scheduler.running:
            issues.append("scheduler stopped")

        registry = TaskRegistry.instance()
        for record in registry.failed():
            issues.append(f"task failed: {record.info.description}")
        registry.prune_finished()

        if issues:
            health_log.warn(f"⚠️ Health check issues: {', '.join(issues)}")
            await self._publish(HealthIssuesEvent(issues))
        else:
            health_log.info("✅ Health check passed", buffered=len(self.context.buffer))
            health_log.debug(registry.summary())

        return issues

    # === Periodic: session detection ===

    async def detect_active_session(self) -> Optional[Session]:
        """
        Start a session if none exists; flag the current one idle once no
        message arrived for session_idle_timeout seconds.

        Returns:
            The newly created session, if any
        """
        if self.context.session is None:
            session = await self._replace_session(AUTO_DETECTED_CONTEXT)
            session_log.info("🔍 New session detected")
            return session

        timeout = self.config.session_idle_timeout
        last = self.context.last_activity_at or self.context.session.started_at
        if timeout > 0 and not self.context.session_idle:
            idle_for = (datetime.now(timezone.utc) - last).total_seconds()
            if idle_for > timeout:
                self.context.session_idle = True
                session_log.info(
                    "Session idle, next message starts a new one",
                    session=self.context.session.id,
                    idle=f"{idle_for:.0f}s",
                )
        return None

    async def _replace_session(self, context_tag: str) -> Session:
        previous = self.context.session
        session = self.context.start_session(context_tag)
        session_log.debug(f"Session started: {session.id} ({context_tag})")
        await self._publish(SessionStartedEvent(
            session.id, context_tag, previous.id if previous else None
        ))
        return session

    # === Shutdown ===

    async def final_flush(self) -> None:
        """
        Backup then state save, each attempted regardless of the other.

        Used by the shutdown sequence after periodic tasks are stopped.
        """
        try:
            await self.backup_current_chat()
        finally:
            await self.save_memory_state()
