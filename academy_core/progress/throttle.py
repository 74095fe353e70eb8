"""Heartbeat throttle for progress writes.

Players report progress every few seconds. After an accepted write for a
(user, video) pair, further reports inside the window are computed but not
persisted; the furthest playhead seen meanwhile is kept and folded into the
next real write.

Redis holds the window when available (shared by all workers). Without
Redis, or when a Redis call fails, each process keeps its own window.
"""

import time
from collections.abc import Callable
from uuid import UUID

import redis.asyncio as redis

from academy_core.core.logging import get_logger
from academy_core.core.redis import progress_playhead_key, progress_throttle_key


logger = get_logger(__name__)

# Keep the highest reported value
_MAX_PLAYHEAD_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '-1')
if tonumber(ARGV[1]) > current then
    redis.call('SET', KEYS[1], ARGV[1], 'PX', ARGV[2])
end
return 1
"""

# Pending playheads outlive the window so the next accepted write sees them
_PLAYHEAD_TTL_FACTOR = 6

_LOCAL_PRUNE_SIZE = 10_000


class ProgressThrottle:
    """Per (user, video) write window."""

    def __init__(
        self,
        redis_client: redis.Redis | None,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.redis = redis_client
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, float] = {}
        self._pending: dict[str, float] = {}

    @property
    def _window_ms(self) -> int:
        return int(self.window_seconds * 1000)

    def _redis_failed(self, operation: str, error: Exception) -> None:
        logger.warning(
            "progress_throttle_redis_failed",
            operation=operation,
            error=str(error),
        )

    # ==========================================================================
    # Write Window
    # ==========================================================================

    async def try_acquire(self, user_id: UUID, video_id: UUID) -> bool:
        """Open a new window. False when one is already open (skip the write)."""
        key = progress_throttle_key(str(user_id), str(video_id))
        if self.redis is not None:
            try:
                acquired = await self.redis.set(key, "1", nx=True, px=self._window_ms)
                return bool(acquired)
            except redis.RedisError as e:
                self._redis_failed("try_acquire", e)

        now = self.clock()
        expires_at = self._windows.get(key)
        if expires_at is not None and expires_at > now:
            return False
        self._prune(now)
        self._windows[key] = now + self.window_seconds
        return True

    async def mark(self, user_id: UUID, video_id: UUID) -> None:
        """Start a window unconditionally (after a write that bypassed the throttle)."""
        key = progress_throttle_key(str(user_id), str(video_id))
        if self.redis is not None:
            try:
                await self.redis.set(key, "1", px=self._window_ms)
                return
            except redis.RedisError as e:
                self._redis_failed("mark", e)
        self._windows[key] = self.clock() + self.window_seconds

    async def release(self, user_id: UUID, video_id: UUID) -> None:
        """Close the window, e.g. when the write it was opened for failed."""
        key = progress_throttle_key(str(user_id), str(video_id))
        if self.redis is not None:
            try:
                await self.redis.delete(key)
                return
            except redis.RedisError as e:
                self._redis_failed("release", e)
        self._windows.pop(key, None)

    def _prune(self, now: float) -> None:
        if len(self._windows) < _LOCAL_PRUNE_SIZE:
            return
        expired = [k for k, expires_at in self._windows.items() if expires_at <= now]
        for key in expired:
            del self._windows[key]
            self._pending.pop(key, None)

    # ==========================================================================
    # Pending Playhead
    # ==========================================================================

    async def remember_playhead(
        self, user_id: UUID, video_id: UUID, watched_duration: float
    ) -> None:
        """Keep the furthest watched duration reported while throttled."""
        if self.redis is not None:
            key = progress_playhead_key(str(user_id), str(video_id))
            try:
                await self.redis.eval(
                    _MAX_PLAYHEAD_SCRIPT,
                    1,
                    key,
                    watched_duration,
                    self._window_ms * _PLAYHEAD_TTL_FACTOR,
                )
                return
            except redis.RedisError as e:
                self._redis_failed("remember_playhead", e)

        key = progress_throttle_key(str(user_id), str(video_id))
        self._pending[key] = max(self._pending.get(key, 0.0), watched_duration)

    async def pop_playhead(self, user_id: UUID, video_id: UUID) -> float | None:
        """Take (and clear) the pending watched duration, if any."""
        pending = None
        if self.redis is not None:
            key = progress_playhead_key(str(user_id), str(video_id))
            try:
                value = await self.redis.getdel(key)
                pending = float(value) if value is not None else None
            except redis.RedisError as e:
                self._redis_failed("pop_playhead", e)

        local = self._pending.pop(progress_throttle_key(str(user_id), str(video_id)), None)
        if local is not None:
            pending = max(pending or 0.0, local)
        return pending
