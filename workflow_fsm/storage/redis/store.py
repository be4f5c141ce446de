"""
Redis-backed store.

Each entity lives under its own key, ``{prefix}:{kind}:{id}``, serialized as
JSON by pydantic. A single SET publishes a fully built entity atomically.
"""

from typing import Optional

import redis.asyncio as redis

from workflow_fsm.config import get_settings
from workflow_fsm.storage.base import EntityT, Store


class RedisStore(Store[EntityT]):
    """
    Durable keyed store for one entity type.

    Args:
        client: Redis client (``decode_responses`` may be on or off)
        model: Pydantic model class used to deserialize entities
        kind: Entity namespace, e.g. ``"definition"`` or ``"instance"``
        key_prefix: Overrides the configured global key prefix
    """

    def __init__(
        self,
        client: redis.Redis,
        model: type[EntityT],
        kind: str,
        key_prefix: Optional[str] = None,
    ):
        self.client = client
        self.model = model
        self.kind = kind
        self.key_prefix = key_prefix or get_settings().redis.key_prefix

    def _key(self, entity_id: str) -> str:
        return f"{self.key_prefix}:{self.kind}:{entity_id}"

    async def get(self, entity_id: str) -> Optional[EntityT]:
        data = await self.client.get(self._key(entity_id))
        if data is None:
            return None
        return self.model.model_validate_json(data)

    async def get_all(self) -> list[EntityT]:
        entities = []

        async for key in self.client.scan_iter(match=f"{self.key_prefix}:{self.kind}:*"):
            data = await self.client.get(key)
            if data:
                entities.append(self.model.model_validate_json(data))

        # SCAN order is arbitrary
        return sorted(entities, key=lambda entity: entity.created_at)

    async def put(self, entity: EntityT, entity_id: Optional[str] = None) -> EntityT:
        entity = self._with_id(entity, entity_id)
        await self.client.set(self._key(entity.id), entity.model_dump_json())
        return entity
