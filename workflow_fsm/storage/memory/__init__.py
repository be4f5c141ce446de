"""In-memory storage backend."""

from workflow_fsm.storage.memory.store import InMemoryStore

__all__ = ["InMemoryStore"]
