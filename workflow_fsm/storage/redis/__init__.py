"""Redis storage backend."""

from workflow_fsm.storage.redis.connection import close_redis, get_redis
from workflow_fsm.storage.redis.store import RedisStore

__all__ = ["RedisStore", "get_redis", "close_redis"]
