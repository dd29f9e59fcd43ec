"""Fixed-window write budgets counted in Redis."""

from __future__ import annotations

import time
from typing import Optional

from app.infra.redis import redis_client


def window_key(kind: str, actor_id: str, *, window_seconds: int, now: float) -> str:
	"""Counter key for the window containing ``now``."""
	window = max(1, int(window_seconds))
	return f"rl:{kind}:{actor_id}:{int(now // window)}:{window}"


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""Count one attempt and report whether it fits in the current window."""
	if limit <= 0:
		return False
	key = window_key(kind, actor_id, window_seconds=window_seconds, now=now or time.time())
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, max(1, int(window_seconds)))
		count, _ = await pipe.execute()
	return int(count) <= limit
