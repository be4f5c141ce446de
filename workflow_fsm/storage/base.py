"""
Store interface for definitions and instances.

The engine only depends on this interface, so the in-memory map can be
swapped for a durable keyed store without touching validation or execution.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from workflow_fsm.core.models import new_id

# Stored entities are pydantic models with `id` and `created_at` fields
EntityT = TypeVar("EntityT", bound=BaseModel)


class Store(ABC, Generic[EntityT]):
    """
    Keyed persistence safe under concurrent invocation.

    Offers no multi-key transactions; consistency across several keys is
    the caller's responsibility.
    """

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[EntityT]:
        """Get entity by ID, or None if absent."""

    @abstractmethod
    async def get_all(self) -> list[EntityT]:
        """Get every stored entity."""

    @abstractmethod
    async def put(self, entity: EntityT, entity_id: Optional[str] = None) -> EntityT:
        """
        Store an entity, replacing any previous version with the same ID.

        The ID is ``entity_id`` if given, else the entity's own ID, else a
        newly generated one. Returns the entity as stored.
        """

    @staticmethod
    def _with_id(entity: EntityT, entity_id: Optional[str]) -> EntityT:
        """Resolve the storage ID and stamp it onto the entity."""
        resolved = entity_id or entity.id or new_id()
        if resolved != entity.id:
            entity = entity.model_copy(update={"id": resolved})
        return entity
