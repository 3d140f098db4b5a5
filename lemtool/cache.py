"""
cache.py — Redis layer for LEMtool.

Namespace conventions:
  draft:{project_id}:{draft_id}   → participant DraftState dict   TTL 24h (86400s)

Design:
  - Uses redis.asyncio (async client, part of redis-py 5.x)
  - Pool created once in lifespan, stored on app.state.redis
  - Helper functions take the client as a param — no module-level global state
  - Logs only project_id / draft_id — never participant names or comments
"""
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from lemtool.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# TTL constants (seconds)
# ---------------------------------------------------------------------------
DRAFT_TTL: int = 86400   # 24 hours

# ---------------------------------------------------------------------------
# Key prefix constants
# ---------------------------------------------------------------------------
DRAFT_PREFIX = "draft"


def make_draft_key(project_id: str, draft_id: str) -> str:
    """Build Redis key for participant progress: draft:{project_id}:{draft_id}"""
    return f"{DRAFT_PREFIX}:{project_id}:{draft_id}"


# ---------------------------------------------------------------------------
# Pool factory — called once in lifespan
# ---------------------------------------------------------------------------

async def create_redis_pool() -> aioredis.Redis:
    """
    Create and return an async Redis connection pool.
    Verifies connectivity with PING before returning.
    """
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    await client.ping()
    logger.info("Redis connection pool established at %s", settings.redis_url)
    return client


# ---------------------------------------------------------------------------
# Draft helpers
# ---------------------------------------------------------------------------

async def get_draft(
    client: aioredis.Redis, project_id: str, draft_id: str
) -> Optional[dict]:
    """Returns None if the draft expired or never existed."""
    raw = await client.get(make_draft_key(project_id, draft_id))
    if raw is None:
        return None
    return json.loads(raw)


async def set_draft(
    client: aioredis.Redis, project_id: str, draft_id: str, data: dict
) -> None:
    """Overwrites the draft and resets its TTL on every write."""
    await client.setex(make_draft_key(project_id, draft_id), DRAFT_TTL, json.dumps(data))
    logger.info(
        "Draft saved project_id=%s draft_id=%s ttl=%ds", project_id, draft_id, DRAFT_TTL
    )


async def delete_draft(client: aioredis.Redis, project_id: str, draft_id: str) -> None:
    await client.delete(make_draft_key(project_id, draft_id))
    logger.info("Draft discarded project_id=%s draft_id=%s", project_id, draft_id)
