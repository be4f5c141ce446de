"""
In-memory store backed by a dict.

Entities are copied on the way in and on the way out, so callers can never
observe or cause a partially modified stored object.
"""

from typing import Optional

from workflow_fsm.storage.base import EntityT, Store


class InMemoryStore(Store[EntityT]):
    """Process-local store. Contents are lost on restart."""

    def __init__(self):
        self._entities: dict[str, EntityT] = {}

    async def get(self, entity_id: str) -> Optional[EntityT]:
        entity = self._entities.get(entity_id)
        if entity is None:
            return None
        return entity.model_copy(deep=True)

    async def get_all(self) -> list[EntityT]:
        return [entity.model_copy(deep=True) for entity in list(self._entities.values())]

    async def put(self, entity: EntityT, entity_id: Optional[str] = None) -> EntityT:
        entity = self._with_id(entity, entity_id)
        self._entities[entity.id] = entity.model_copy(deep=True)
        return entity

    def __len__(self) -> int:
        return len(self._entities)
