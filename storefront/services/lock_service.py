import redis
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete in one Lua call, so a lock is only released by its owner
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    -short-lived exclusive locks (SET NX EX)
    -release only by the owner token
    -locks expire on their own after ttl
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key} for {owner}")
        #SET checkout:1:lock "<token>" NX EX 60
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, owner: str) -> bool:
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
