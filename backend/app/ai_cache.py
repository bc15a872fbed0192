"""
Database-backed cache and rate limiter for LLM calls.

Both live in tables so that any number of worker processes share them; no
state is kept in memory between requests.
"""

import hashlib
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.models import AIRateLimit, AIResponseCache, get_datetime_utc

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    def __init__(self, key: str, limit: int, retry_after: int):
        self.key = key
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"Rate limit of {limit} requests exceeded for {key}")


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_cache_key(
    endpoint: str, model: str | None, system_prompt: str, user_prompt: Any
) -> str:
    document = json.dumps(
        {
            "endpoint": endpoint,
            "model": model,
            "system": system_prompt,
            "user": user_prompt,
        },
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(document.encode("utf-8")).hexdigest()


def get_cached_response(
    session: Session, cache_key: str, now: datetime | None = None
) -> dict[str, Any] | None:
    now = now or get_datetime_utc()
    row = session.exec(
        select(AIResponseCache).where(AIResponseCache.cache_key == cache_key)
    ).first()
    if row is None:
        return None
    if as_utc(row.expires_at) <= now:
        logger.debug("Cache entry %s expired", cache_key[:12])
        return None

    row.hit_count += 1
    session.add(row)
    session.commit()
    logger.info("AI cache hit for %s (hits=%s)", row.endpoint, row.hit_count)
    return row.response


def store_cached_response(
    session: Session,
    *,
    cache_key: str,
    endpoint: str,
    model: str | None,
    response: dict[str, Any],
    ttl_hours: int | None = None,
    now: datetime | None = None,
) -> AIResponseCache:
    now = now or get_datetime_utc()
    ttl = ttl_hours if ttl_hours is not None else settings.AI_CACHE_TTL_HOURS
    expires_at = now + timedelta(hours=ttl)

    row = session.exec(
        select(AIResponseCache).where(AIResponseCache.cache_key == cache_key)
    ).first()
    if row is None:
        row = AIResponseCache(
            cache_key=cache_key,
            endpoint=endpoint,
            model=model,
            response=response,
            created_at=now,
            expires_at=expires_at,
        )
    else:
        row.response = response
        row.model = model
        row.created_at = now
        row.expires_at = expires_at
        row.hit_count = 0
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def check_rate_limit(
    session: Session,
    key: str,
    limit: int,
    window_seconds: int | None = None,
    now: datetime | None = None,
) -> int:
    """Count one request against ``key`` and return the count for the current window.

    Raises ``RateLimitExceeded`` once the count goes past ``limit``.
    """
    window = window_seconds or settings.AI_RATE_LIMIT_WINDOW_SECONDS
    timestamp = int((now or get_datetime_utc()).timestamp())
    bucket = timestamp // window

    for attempt in range(2):
        row = session.exec(
            select(AIRateLimit).where(
                AIRateLimit.key == key, AIRateLimit.window_bucket == bucket
            )
        ).first()
        if row is None:
            row = AIRateLimit(key=key, window_bucket=bucket, request_count=0)
        row.request_count += 1
        session.add(row)
        try:
            session.commit()
            break
        except IntegrityError:
            # Another request created the counter row first
            session.rollback()
            if attempt == 1:
                raise

    count = row.request_count
    if count > limit:
        retry_after = (bucket + 1) * window - timestamp
        logger.warning("Rate limit exceeded for %s (%s/%s)", key, count, limit)
        raise RateLimitExceeded(key, limit, retry_after)
    return count


def purge_expired(
    session: Session,
    window_seconds: int | None = None,
    now: datetime | None = None,
) -> tuple[int, int]:
    """Delete expired cache entries and counters from past windows.

    Returns ``(cache_rows, rate_limit_rows)`` removed.
    """
    now = now or get_datetime_utc()
    window = window_seconds or settings.AI_RATE_LIMIT_WINDOW_SECONDS
    bucket = int(now.timestamp()) // window

    expired = session.exec(
        select(AIResponseCache).where(AIResponseCache.expires_at <= now)
    ).all()
    stale = session.exec(
        select(AIRateLimit).where(AIRateLimit.window_bucket < bucket)
    ).all()
    for row in [*expired, *stale]:
        session.delete(row)
    session.commit()

    if expired or stale:
        logger.info(
            "Purged %s expired AI cache entries and %s rate limit counters",
            len(expired),
            len(stale),
        )
    return len(expired), len(stale)


async def cached_structured(
    session: Session,
    *,
    endpoint: str,
    model: str | None,
    system_prompt: str,
    user_prompt: Any,
    produce: Callable[[], Awaitable[dict[str, Any]]],
    rate_limit_key: str | None = None,
    limit: int | None = None,
) -> tuple[dict[str, Any], bool]:
    """Serve an LLM result from cache, or call ``produce`` and cache its result.

    Returns ``(response, cached)``. Only cache misses count against the
    rate limit.
    """
    cache_key = build_cache_key(endpoint, model, system_prompt, user_prompt)
    cached = get_cached_response(session, cache_key)
    if cached is not None:
        return cached, True

    if rate_limit_key is not None and limit is not None:
        check_rate_limit(session, rate_limit_key, limit)

    response = await produce()
    store_cached_response(
        session,
        cache_key=cache_key,
        endpoint=endpoint,
        model=model,
        response=response,
    )
    logger.info("AI cache miss for %s stored as %s", endpoint, cache_key[:12])
    return response, False
