from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlmodel import Session, select

from app.ai_cache import (
    RateLimitExceeded,
    build_cache_key,
    cached_structured,
    check_rate_limit,
    get_cached_response,
    purge_expired,
    store_cached_response,
)
from app.models import AIRateLimit, AIResponseCache

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_cache_key_is_stable_and_prompt_sensitive():
    key = build_cache_key("swot", "model-a", "system", "user")

    assert key == build_cache_key("swot", "model-a", "system", "user")
    assert len(key) == 64
    assert key != build_cache_key("swot", "model-b", "system", "user")
    assert key != build_cache_key("swot", "model-a", "system", "other user")
    assert key != build_cache_key("scenarios", "model-a", "system", "user")


def test_cache_key_accepts_multimodal_prompts():
    parts = [{"type": "text", "text": "extract"}, {"type": "image_url", "image_url": {"url": "data:x"}}]
    assert build_cache_key("extract", None, "system", parts) != build_cache_key(
        "extract", None, "system", "extract"
    )


def test_cached_response_expires(session: Session):
    store_cached_response(
        session,
        cache_key="k" * 64,
        endpoint="swot",
        model="m",
        response={"ok": True},
        ttl_hours=1,
        now=NOW,
    )

    assert get_cached_response(session, "k" * 64, now=NOW + timedelta(minutes=30)) == {"ok": True}
    assert get_cached_response(session, "k" * 64, now=NOW + timedelta(hours=2)) is None


def test_rate_limit_counts_per_window(session: Session):
    assert check_rate_limit(session, "ip:1.2.3.4", 2, window_seconds=60, now=NOW) == 1
    assert check_rate_limit(session, "ip:1.2.3.4", 2, window_seconds=60, now=NOW) == 2

    with pytest.raises(RateLimitExceeded) as exc_info:
        check_rate_limit(session, "ip:1.2.3.4", 2, window_seconds=60, now=NOW + timedelta(seconds=15))
    assert exc_info.value.retry_after == 45

    # Next window starts fresh; other keys are independent
    assert check_rate_limit(session, "ip:1.2.3.4", 2, window_seconds=60, now=NOW + timedelta(minutes=1)) == 1
    assert check_rate_limit(session, "ip:5.6.7.8", 2, window_seconds=60, now=NOW) == 1


def test_purge_drops_expired_entries_and_old_windows(session: Session):
    store_cached_response(
        session, cache_key="a" * 64, endpoint="swot", model="m", response={}, ttl_hours=1, now=NOW
    )
    store_cached_response(
        session, cache_key="b" * 64, endpoint="swot", model="m", response={}, ttl_hours=48, now=NOW
    )
    check_rate_limit(session, "user:old", 5, window_seconds=60, now=NOW)
    check_rate_limit(session, "user:current", 5, window_seconds=60, now=NOW + timedelta(hours=2))

    later = NOW + timedelta(hours=2)
    assert purge_expired(session, window_seconds=60, now=later) == (1, 1)

    assert [row.cache_key for row in session.exec(select(AIResponseCache)).all()] == ["b" * 64]
    assert [row.key for row in session.exec(select(AIRateLimit)).all()] == ["user:current"]
    assert purge_expired(session, window_seconds=60, now=later) == (0, 0)


@pytest.mark.asyncio
async def test_cached_structured_only_produces_once(session: Session):
    produce = AsyncMock(return_value={"strengths": ["a"]})

    first, first_cached = await cached_structured(
        session,
        endpoint="swot",
        model="m",
        system_prompt="s",
        user_prompt="u",
        produce=produce,
        rate_limit_key="user:1",
        limit=5,
    )
    second, second_cached = await cached_structured(
        session,
        endpoint="swot",
        model="m",
        system_prompt="s",
        user_prompt="u",
        produce=produce,
        rate_limit_key="user:1",
        limit=5,
    )

    assert first == second == {"strengths": ["a"]}
    assert (first_cached, second_cached) == (False, True)
    produce.assert_awaited_once()


@pytest.mark.asyncio
async def test_cache_hits_do_not_count_against_the_limit(session: Session):
    produce = AsyncMock(return_value={"ok": True})
    kwargs = dict(endpoint="e", model="m", system_prompt="s", produce=produce, rate_limit_key="user:2", limit=1)

    await cached_structured(session, user_prompt="a", **kwargs)
    await cached_structured(session, user_prompt="a", **kwargs)

    with pytest.raises(RateLimitExceeded):
        await cached_structured(session, user_prompt="b", **kwargs)
    assert produce.await_count == 1
