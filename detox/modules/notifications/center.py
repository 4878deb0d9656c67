"""Device notification boundary.

The scheduler never talks to the device directly. It goes through a
``NotificationCenter``, which owns pending requests and the permission
state.  ``RedisNotificationCenter`` is the production bridge: the
device-side app mirrors the pending hash into real local notifications
and writes its permission status back.  ``InMemoryNotificationCenter``
keeps everything in process for development and tests.
"""

from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod

import structlog
from pydantic import ValidationError

from shared.schemas.notifications import AuthorizationStatus, NotificationRequest

logger = structlog.get_logger()


class NotificationCenter(ABC):
    """Abstract interface to the device notification subsystem."""

    @abstractmethod
    async def submit(self, request: NotificationRequest) -> None:
        """Hand a request to the device for future delivery."""

    @abstractmethod
    async def list_pending(self) -> list[NotificationRequest]:
        """Return every request that has not fired yet."""

    @abstractmethod
    async def cancel(self, identifiers: list[str]) -> None:
        """Remove pending requests by identifier."""

    @abstractmethod
    async def cancel_all(self) -> None:
        """Remove every pending request."""

    @abstractmethod
    async def check_permission(self) -> AuthorizationStatus:
        """Read the current permission status. No side effects."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Prompt the user for permission and return whether it was granted."""


class InMemoryNotificationCenter(NotificationCenter):
    """Process-local center.

    ``prompt_result`` is the status adopted the first time permission is
    requested, standing in for the user's answer to the prompt.
    """

    def __init__(
        self,
        status: AuthorizationStatus = AuthorizationStatus.NOT_DETERMINED,
        prompt_result: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
    ):
        self.status = status
        self.prompt_result = prompt_result
        self.pending: dict[str, NotificationRequest] = {}

    async def submit(self, request: NotificationRequest) -> None:
        self.pending[request.identifier] = request

    async def list_pending(self) -> list[NotificationRequest]:
        return list(self.pending.values())

    async def cancel(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            self.pending.pop(identifier, None)

    async def cancel_all(self) -> None:
        self.pending.clear()

    async def check_permission(self) -> AuthorizationStatus:
        return self.status

    async def request_permission(self) -> bool:
        if self.status == AuthorizationStatus.NOT_DETERMINED:
            self.status = self.prompt_result
        return self.status == AuthorizationStatus.AUTHORIZED


class RedisNotificationCenter(NotificationCenter):
    """Center backed by Redis keys shared with the device bridge.

    Keys (``ns`` = configured namespace):
    - ``<ns>:pending``              hash, identifier -> request JSON
    - ``<ns>:permission``           current AuthorizationStatus value
    - ``<ns>:permission_prompts``   channel asking the device to prompt
    """

    def __init__(
        self,
        redis_client,
        namespace: str,
        prompt_timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 0.5,
    ):
        self._redis = redis_client
        self.pending_key = f"{namespace}:pending"
        self.permission_key = f"{namespace}:permission"
        self.prompt_channel = f"{namespace}:permission_prompts"
        self.prompt_timeout_seconds = prompt_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds

    async def submit(self, request: NotificationRequest) -> None:
        await self._redis.hset(self.pending_key, request.identifier, request.model_dump_json())

    async def list_pending(self) -> list[NotificationRequest]:
        raw = await self._redis.hgetall(self.pending_key)
        requests = []
        for identifier, value in raw.items():
            try:
                requests.append(NotificationRequest.model_validate_json(value))
            except ValidationError as e:
                logger.warning("pending_request_unreadable", identifier=identifier, error=str(e))
        return requests

    async def cancel(self, identifiers: list[str]) -> None:
        if identifiers:
            await self._redis.hdel(self.pending_key, *identifiers)

    async def cancel_all(self) -> None:
        await self._redis.delete(self.pending_key)

    async def check_permission(self) -> AuthorizationStatus:
        value = await self._redis.get(self.permission_key)
        if value is None:
            return AuthorizationStatus.NOT_DETERMINED
        try:
            return AuthorizationStatus(value)
        except ValueError:
            logger.warning("permission_status_unknown", value=value)
            return AuthorizationStatus.NOT_DETERMINED

    async def request_permission(self) -> bool:
        """Ask the device to show the prompt, then wait for its answer.

        The device only prompts once; if a status is already recorded it is
        returned without prompting again.
        """
        status = await self.check_permission()
        if status != AuthorizationStatus.NOT_DETERMINED:
            return status == AuthorizationStatus.AUTHORIZED

        await self._redis.publish(
            self.prompt_channel, json.dumps({"requested_at": time.time()})
        )
        logger.info("permission_prompt_requested", channel=self.prompt_channel)

        deadline = time.monotonic() + self.prompt_timeout_seconds
        while time.monotonic() < deadline:
            await asyncio.sleep(self.poll_interval_seconds)
            status = await self.check_permission()
            if status != AuthorizationStatus.NOT_DETERMINED:
                return status == AuthorizationStatus.AUTHORIZED

        logger.warning("permission_prompt_timeout", timeout=self.prompt_timeout_seconds)
        return False
