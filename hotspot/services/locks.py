import uuid

import redis

from hotspot.core.config import settings


class TickLock:
    """
    Single-holder lock for periodic tasks: SET NX EX, released only by the
    holder. A tick that cannot take it is skipped, so two sweeps never overlap.
    """

    _RELEASE_SCRIPT = """
    if redis.call('get', KEYS[1]) == ARGV[1] then
        return redis.call('del', KEYS[1])
    end
    return 0
    """

    def __init__(self, name: str, ttl_seconds: int, client: redis.Redis | None = None) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.key = f"tick_lock:{name}"
        self.ttl = ttl_seconds
        self._token: str | None = None

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        created = self.client.set(self.key, token, nx=True, ex=self.ttl)
        if created:
            self._token = token
            return True
        return False

    def release(self) -> None:
        if self._token is None:
            return
        self.client.eval(self._RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
