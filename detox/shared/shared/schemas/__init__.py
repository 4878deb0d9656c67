"""Pydantic schemas shared by the notification services."""

from shared.schemas.common import HealthResponse
from shared.schemas.notifications import (
    AuthorizationStatus,
    NotificationPreferences,
    NotificationRequest,
    NotificationTap,
    NotificationTypeTag,
    TrackingState,
    UiEvent,
)
from shared.schemas.tools import (
    ModuleManifest,
    ToolCall,
    ToolDefinition,
    ToolParameter,
    ToolResult,
)

__all__ = [
    "AuthorizationStatus",
    "HealthResponse",
    "ModuleManifest",
    "NotificationPreferences",
    "NotificationRequest",
    "NotificationTap",
    "NotificationTypeTag",
    "ToolCall",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    "TrackingState",
    "UiEvent",
]
