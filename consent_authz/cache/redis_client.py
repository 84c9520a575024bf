from __future__ import annotations
from typing import Optional
from redis.asyncio import from_url, Redis

_client: Optional[Redis] = None

def get_redis(url: str) -> Redis:
    global _client
    if _client is None:
        _client = from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _client

async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
