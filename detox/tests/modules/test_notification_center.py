"""Tests for the device notification boundary and the permission gate."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from modules.notifications.authorization import AuthorizationGate
from modules.notifications.center import InMemoryNotificationCenter, RedisNotificationCenter
from shared.schemas.notifications import AuthorizationStatus, NotificationRequest


def _request(identifier: str) -> NotificationRequest:
    return NotificationRequest(
        identifier=identifier,
        fire_at=datetime(2026, 3, 15, 20, 0, tzinfo=timezone.utc),
        title="Alex",
        body="hey stranger",
        payload={"type": "ex_quiz", "messageId": "m1"},
    )


# ---------------------------------------------------------------------------
# In-memory center
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_in_memory_prompt_adopts_answer_once():
    center = InMemoryNotificationCenter(prompt_result=AuthorizationStatus.DENIED)

    assert await center.request_permission() is False
    assert await center.check_permission() == AuthorizationStatus.DENIED

    center.prompt_result = AuthorizationStatus.AUTHORIZED
    assert await center.request_permission() is False


@pytest.mark.asyncio
async def test_in_memory_cancel_ignores_unknown_ids():
    center = InMemoryNotificationCenter()
    await center.submit(_request("ex_quiz_0_a"))

    await center.cancel(["ex_quiz_0_a", "never_existed"])

    assert await center.list_pending() == []


# ---------------------------------------------------------------------------
# Redis center
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_redis_submit_writes_pending_hash(mock_redis):
    center = RedisNotificationCenter(mock_redis, namespace="test")
    request = _request("ex_quiz_0_a")

    await center.submit(request)

    key, field, value = mock_redis.hset.call_args.args
    assert key == "test:pending"
    assert field == "ex_quiz_0_a"
    assert NotificationRequest.model_validate_json(value) == request


@pytest.mark.asyncio
async def test_redis_list_pending_skips_unreadable(mock_redis):
    mock_redis.hgetall.return_value = {
        "ex_quiz_0_a": _request("ex_quiz_0_a").model_dump_json(),
        "broken": "{oops",
    }
    center = RedisNotificationCenter(mock_redis, namespace="test")

    pending = await center.list_pending()

    assert [r.identifier for r in pending] == ["ex_quiz_0_a"]
    mock_redis.hgetall.assert_called_once_with("test:pending")


@pytest.mark.asyncio
async def test_redis_cancel(mock_redis):
    center = RedisNotificationCenter(mock_redis, namespace="test")

    await center.cancel([])
    mock_redis.hdel.assert_not_called()

    await center.cancel(["a", "b"])
    mock_redis.hdel.assert_called_once_with("test:pending", "a", "b")

    await center.cancel_all()
    mock_redis.delete.assert_called_once_with("test:pending")


@pytest.mark.asyncio
@pytest.mark.parametrize("stored,expected", [
    (None, AuthorizationStatus.NOT_DETERMINED),
    ("authorized", AuthorizationStatus.AUTHORIZED),
    ("provisional", AuthorizationStatus.PROVISIONAL),
    ("sideways", AuthorizationStatus.NOT_DETERMINED),
])
async def test_redis_check_permission(mock_redis, stored, expected):
    mock_redis.get.return_value = stored
    center = RedisNotificationCenter(mock_redis, namespace="test")

    assert await center.check_permission() == expected
    mock_redis.get.assert_called_once_with("test:permission")


@pytest.mark.asyncio
async def test_redis_request_permission_already_answered(mock_redis):
    mock_redis.get.return_value = "denied"
    center = RedisNotificationCenter(mock_redis, namespace="test")

    assert await center.request_permission() is False
    mock_redis.publish.assert_not_called()


@pytest.mark.asyncio
async def test_redis_request_permission_waits_for_device(mock_redis):
    mock_redis.get.side_effect = [None, None, "authorized"]
    center = RedisNotificationCenter(
        mock_redis, namespace="test", prompt_timeout_seconds=5, poll_interval_seconds=0
    )

    assert await center.request_permission() is True

    channel, message = mock_redis.publish.call_args.args
    assert channel == "test:permission_prompts"
    assert "requested_at" in json.loads(message)


@pytest.mark.asyncio
async def test_redis_request_permission_times_out(mock_redis):
    center = RedisNotificationCenter(
        mock_redis, namespace="test", prompt_timeout_seconds=0.01, poll_interval_seconds=0.005
    )

    assert await center.request_permission() is False
    mock_redis.publish.assert_called_once()


# ---------------------------------------------------------------------------
# AuthorizationGate
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_gate_tracks_status():
    center = InMemoryNotificationCenter()
    gate = AuthorizationGate(center)

    assert await gate.is_authorized() is False
    assert gate.status == AuthorizationStatus.NOT_DETERMINED

    assert await gate.request_authorization() is True
    assert gate.status == AuthorizationStatus.AUTHORIZED
    assert await gate.is_authorized() is True


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [
    AuthorizationStatus.DENIED,
    AuthorizationStatus.PROVISIONAL,
    AuthorizationStatus.RESTRICTED,
])
async def test_gate_only_full_authorization_counts(status):
    gate = AuthorizationGate(InMemoryNotificationCenter(status=status))
    assert await gate.is_authorized() is False


@pytest.mark.asyncio
async def test_gate_errors_read_as_not_determined():
    center = InMemoryNotificationCenter(status=AuthorizationStatus.AUTHORIZED)
    center.check_permission = AsyncMock(side_effect=ConnectionError("bridge down"))
    center.request_permission = AsyncMock(side_effect=ConnectionError("bridge down"))
    gate = AuthorizationGate(center)

    assert await gate.check_status() == AuthorizationStatus.NOT_DETERMINED
    assert await gate.request_authorization() is False
