import redis

from ...application.ports.rate_limiter import RateLimiter

class RedisRateLimiter(RateLimiter):
    """Fixed-window limiter shared by every worker that points at the same Redis."""

    def __init__(self, url: str, prefix: str = "carebook:rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}:{window_seconds}"
        # INCR with EXPIRE for a fixed window
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, window_seconds)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)

    def reset(self, key: str) -> None:
        # windows are part of the stored key name
        stale = list(self.client.scan_iter(match=f"{self.prefix}{key}:*"))
        if stale:
            self.client.delete(*stale)
