"""Notification permission gate."""

from __future__ import annotations

import structlog

from modules.notifications.center import NotificationCenter
from shared.schemas.notifications import AuthorizationStatus

logger = structlog.get_logger()


class AuthorizationGate:
    """Reads and requests notification permission.

    Scheduling is best-effort: callers check ``is_authorized`` and skip
    their work when it is False instead of raising.
    """

    def __init__(self, center: NotificationCenter):
        self.center = center
        self.status = AuthorizationStatus.NOT_DETERMINED

    async def check_status(self) -> AuthorizationStatus:
        try:
            self.status = await self.center.check_permission()
        except Exception as e:
            logger.warning("permission_check_failed", error=str(e))
            self.status = AuthorizationStatus.NOT_DETERMINED
        return self.status

    async def is_authorized(self) -> bool:
        return await self.check_status() == AuthorizationStatus.AUTHORIZED

    async def request_authorization(self) -> bool:
        try:
            granted = await self.center.request_permission()
        except Exception as e:
            logger.error("permission_request_failed", error=str(e))
            granted = False
        await self.check_status()
        logger.info("permission_requested", granted=granted, status=self.status.value)
        return granted
