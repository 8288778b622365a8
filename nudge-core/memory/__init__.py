from memory.chat_store import PostgresChatStore
from memory.db_init import initialize_database
from memory.redis_client import RedisKeyValueStore

__all__ = ["PostgresChatStore", "RedisKeyValueStore", "initialize_database"]
