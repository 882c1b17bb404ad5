"""Service Container - Dependency injection container for the daemon's services"""

from dataclasses import dataclass

from lifecycle.liveness_marker import LivenessMarker
from models.config import DaemonConfig
from models.domain import DaemonContext
from services.collaborators import DurableStore, EmbeddingProvider
from services.event_bus import EventBus
from services.memory_service import MemoryService
from services.periodic_scheduler import PeriodicScheduler
from services.persistence_service import PersistenceService


@dataclass
class ServiceContainer:
    """
    Everything the LifecycleController wires together.

    Built once per process by memory_daemon.build_services(); tests build
    it by hand with fakes for the collaborators.

    Services included:
    - context: status flags, session and message buffer of this process
    - persistence: on-disk snapshots and chat backups
    - event_bus: pub-sub for daemon events
    - memory_service: chat ingestion and periodic task bodies
    - scheduler: periodic backup / state save / health check / session detect
    - marker: PID file and single-instance lock

    External collaborators:
    - durable_store: long-term store pinged by episodic memory
    - embeddings: vector backend pinged by the vector database stage
    """

    config: DaemonConfig
    context: DaemonContext
    persistence: PersistenceService
    event_bus: EventBus
    memory_service: MemoryService
    scheduler: PeriodicScheduler
    marker: LivenessMarker
    durable_store: DurableStore
    embeddings: EmbeddingProvider
