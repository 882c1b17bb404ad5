"""
Default startup stages ("light switch" sequence)

Order matters: main power creates the session every later stage works
under, working memory prepares the buffer, then the memory categories
and their backends come online.
"""

from typing import List

from lifecycle.startup_sequencer import Stage
from models.domain import DaemonContext
from services.collaborators import DurableStore, EmbeddingProvider
from services.persistence_service import PersistenceService
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.STARTUP)


STARTUP_SESSION_CONTEXT = "memory_daemon_startup"


def build_default_stages(
    persistence: PersistenceService,
    durable_store: DurableStore,
    embeddings: EmbeddingProvider,
) -> List[Stage]:
    """
    Build the six default stages.

    Args:
        persistence: Used by semantic memory to find knowledge files
        durable_store: Pinged by episodic memory
        embeddings: Pinged by the vector database stage
    """

    async def activate_main_power(context: DaemonContext) -> None:
        session = context.start_session(STARTUP_SESSION_CONTEXT)
        log.debug(f"Session started: {session.id}")

    async def activate_working_memory(context: DaemonContext) -> None:
        # A reload keeps messages that were buffered but not yet backed up
        if len(context.buffer):
            log.info(f"Working memory keeps {len(context.buffer)} buffered message(s)")
        else:
            context.buffer.reset()

    async def activate_episodic_memory(context: DaemonContext) -> None:
        await durable_store.ping()

    async def activate_semantic_memory(context: DaemonContext) -> None:
        files = persistence.knowledge_files()
        log.debug(f"Knowledge files available: {len(files)}")

    async def activate_procedural_memory(context: DaemonContext) -> None:
        # Behavioural rules ship with the external memory engine
        return None

    async def activate_vector_database(context: DaemonContext) -> None:
        await embeddings.ping()

    return [
        Stage("main_power", "Main Power", activate_main_power),
        Stage("working_memory", "Working Memory", activate_working_memory),
        Stage("episodic_memory", "Episodic Memory", activate_episodic_memory),
        Stage("semantic_memory", "Semantic Memory", activate_semantic_memory),
        Stage("procedural_memory", "Procedural Memory", activate_procedural_memory),
        Stage("vector_database", "Vector Database", activate_vector_database),
    ]
