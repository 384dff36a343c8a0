import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.clients.cache.CacheClientInterface import CacheClientInterface
from shared.errors import CacheUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class CacheClientRedis(CacheClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._host = self.get_config_val("HOST", default="localhost", val_type="string")
        self._port = int(self.get_config_val("PORT", default=6379, val_type="number"))
        self._password = self.get_config_val("PASSWORD", default="", val_type="string")
        self._db = int(self.get_config_val("DB", default=0, val_type="number"))
        self._timeout = float(self.get_config_val("TIMEOUT", default=5, val_type="number"))
        self._client: aioredis.Redis | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Redis"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="HOST", val_type="string", default="localhost"),
            EnvConfig(env_key="PORT", val_type="number", default=6379),
            EnvConfig(env_key="PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="DB", val_type="number", default=0),
            EnvConfig(env_key="TIMEOUT", val_type="number", default=5),
        ]

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            raise CacheUnavailable("Redis client not initialised. Call boot() before using the cache.")
        return self._client

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        # the connection is established lazily by the pool, a down server surfaces on first use
        self._client = aioredis.Redis(
            host=self._host,
            port=self._port,
            db=self._db,
            password=self._password or None,
            socket_timeout=self._timeout,
            socket_connect_timeout=self._timeout,
            decode_responses=True,
        )
        self.logging.info("Redis cache configured at %s:%d (db %d)", self._host, self._port, self._db)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    async def get(self, key: str) -> str | None:
        try:
            return await self._get_client().get(key)
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis GET failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._get_client().set(key, value, ex=ttl)
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis SET failed: {e}") from e

    async def delete(self, keys: list[str]) -> int:
        if not keys:
            return 0
        try:
            return int(await self._get_client().delete(*keys))
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis DEL failed: {e}") from e

    async def scan_keys(self, pattern: str) -> list[str]:
        try:
            return [key async for key in self._get_client().scan_iter(match=pattern, count=500)]
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis SCAN failed: {e}") from e

    async def stats(self) -> dict:
        try:
            client = self._get_client()
            total_keys = await client.dbsize()
            memory = await client.info("memory")
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis INFO failed: {e}") from e
        return {
            "total_keys": int(total_keys),
            "memory_usage": memory.get("used_memory_human", "unknown"),
        }
