"""Redis client factory and the settlement leader lock.

Redis is never used for balances. It only elects the one replica that runs
the settlement scan.
"""

import logging
import uuid

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

# Compare-and-set on the lease token; KEYS[1] = lock key, ARGV[1] = token.
_RENEW_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('pexpire', KEYS[1], ARGV[2])
end
return 0
"""

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


def create_redis(url: str) -> aioredis.Redis:
    return aioredis.from_url(url, decode_responses=True)


async def close_redis(client: aioredis.Redis | None) -> None:
    if client is not None:
        await client.aclose()


class RedisLeaderLock:
    """Lease-based leadership: SET NX PX to acquire, token-checked PEXPIRE to renew.

    Renew and release run as Lua scripts so the token check and the write are
    one atomic step; a lease that expired and went to another replica is never
    extended or deleted by the old holder. A replica that stops renewing loses
    the lease after ttl_ms, so at most one scanner runs at a time barring clock
    pauses longer than the ttl. Bet settlement stays idempotent either way.
    """

    def __init__(self, client: aioredis.Redis, key: str, ttl_ms: int) -> None:
        self._client = client
        self._key = key
        self._ttl_ms = ttl_ms
        self._token = uuid.uuid4().hex

    async def acquire_or_renew(self) -> bool:
        if await self._client.set(self._key, self._token, nx=True, px=self._ttl_ms):
            logger.info("Acquired leader lock %s", self._key)
            return True
        renewed = await self._client.eval(
            _RENEW_SCRIPT, 1, self._key, self._token, self._ttl_ms
        )
        return bool(renewed)

    async def release(self) -> None:
        released = await self._client.eval(_RELEASE_SCRIPT, 1, self._key, self._token)
        if released:
            logger.info("Released leader lock %s", self._key)
