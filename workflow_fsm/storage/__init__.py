"""Storage layer for workflow definitions and instances."""

from workflow_fsm.storage.base import Store
from workflow_fsm.storage.memory import InMemoryStore
from workflow_fsm.storage.redis import RedisStore

__all__ = ["Store", "InMemoryStore", "RedisStore"]
