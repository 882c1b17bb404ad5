"""
External collaborator interfaces

The daemon only needs to know whether its long-term store and its
embeddings provider are reachable during startup. Real clients live
outside this project and are injected through ServiceContainer; the
Null implementations keep the daemon usable on its own.
"""

from typing import Optional, Protocol

from models.config import DaemonConfig
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.STARTUP)


class DurableStore(Protocol):
    """Long-term memory persistence beyond local JSON snapshots (e.g. a document database)."""

    async def ping(self) -> None:
        """Raise if the store is unreachable."""
        ...

    async def close(self) -> None:
        ...


class EmbeddingProvider(Protocol):
    """Embeddings / vector-search backend for semantic recall."""

    async def ping(self) -> None:
        """Raise if the provider is unreachable."""
        ...

    async def close(self) -> None:
        ...


class NullDurableStore:
    """Used when no durable store client is injected."""

    def __init__(self, uri: Optional[str] = None):
        self.configured = bool(uri)

    async def ping(self) -> None:
        if self.configured:
            log.warn("Durable store URI configured but no client injected, long-term store disabled")

    async def close(self) -> None:
        return None


class NullEmbeddingProvider:
    """Used when no embeddings client is injected."""

    def __init__(self, endpoint: Optional[str] = None):
        self.configured = bool(endpoint)

    async def ping(self) -> None:
        if self.configured:
            log.warn("Embeddings endpoint configured but no client injected, semantic recall disabled")

    async def close(self) -> None:
        return None


def default_collaborators(config: DaemonConfig):
    """Null collaborators carrying the configured connection details."""
    return (
        NullDurableStore(config.durable_store_uri),
        NullEmbeddingProvider(config.embeddings_endpoint),
    )
