import redis
from redis.exceptions import RedisError

from agrimarket.utils.retry import redis_retry
from agrimarket.utils.settings import REDIS_URL
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete: only the owner that set the key may release it
# the script runs atomically, nothing can slip in between GET and DEL
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def checkout_lock_key(user_id: int) -> str:
    return f"user:{user_id}:checkout:lock"


def payment_lock_key(order_id: str) -> str:
    return f"order:{order_id}:payment:lock"


class LockService:
    """
    Short-lived advisory locks in Redis.
    -acquire: SET key owner NX EX ttl
    -release: Lua compare-and-delete
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key} for {owner}")
        # SET user:1:checkout:lock "<owner>" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=owner,
                nx=True,  # only if nobody holds it
                ex=ttl,  # expires on its own if the holder dies
            )
        )

    @redis_retry()
    def release(self, key: str, owner: str) -> bool:
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)

    def safe_release(self, key: str, owner: str) -> None:
        # the key has a TTL, a failed release only delays the next holder
        try:
            self.release(key, owner)
        except RedisError as e:
            logger.warning(f"Failed to release lock {key}: {e}")
