"""Notifications module: FastAPI service with background tap routing."""

from __future__ import annotations

import asyncio

import structlog
from fastapi import Depends, FastAPI

from modules.notifications.manifest import MANIFEST
from modules.notifications.tools import NotificationTools
from modules.notifications.worker import tap_listener
from shared.auth import require_service_auth
from shared.config import get_settings
from shared.redis import close_redis, get_redis
from shared.schemas.common import HealthResponse
from shared.schemas.tools import ModuleManifest, ToolCall, ToolResult

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()
app = FastAPI(title="Notifications Module", version="1.0.0")

tools: NotificationTools | None = None
_background_tasks: list[asyncio.Task] = []
_redis_connected = False


@app.on_event("startup")
async def startup():
    global tools, _redis_connected
    settings = get_settings()

    redis_client = await get_redis()
    _redis_connected = redis_client is not None
    tools = NotificationTools.from_settings(settings, redis_client)

    _background_tasks.append(asyncio.create_task(tools.router.run()))
    if redis_client is not None:
        _background_tasks.append(
            asyncio.create_task(
                tap_listener(
                    tools.router, redis_client, f"{settings.preferences_namespace}:taps"
                )
            )
        )
    logger.info("notifications_module_ready", redis=_redis_connected)


@app.on_event("shutdown")
async def shutdown():
    for task in _background_tasks:
        if not task.done():
            task.cancel()
    for task in _background_tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    _background_tasks.clear()
    await close_redis()
    logger.info("notifications_module_shutdown")


@app.get("/manifest", response_model=ModuleManifest)
async def manifest(_=Depends(require_service_auth)):
    """Return the module manifest."""
    return MANIFEST


@app.post("/execute", response_model=ToolResult)
async def execute(call: ToolCall, _=Depends(require_service_auth)):
    """Execute a tool call."""
    if tools is None:
        return ToolResult(tool_name=call.tool_name, success=False, error="Module not ready")

    try:
        tool_name = call.tool_name.split(".")[-1]
        args = dict(call.arguments)

        if tool_name == "app_foreground":
            result = await tools.app_foreground(**args)
        elif tool_name == "schedule_quiz":
            result = await tools.schedule_quiz(**args)
        elif tool_name == "schedule_streak":
            result = await tools.schedule_streak(**args)
        elif tool_name == "cancel_notifications":
            result = await tools.cancel_notifications(**args)
        elif tool_name == "cancel_all":
            result = await tools.cancel_all()
        elif tool_name == "permission_status":
            result = await tools.permission_status()
        elif tool_name == "request_permission":
            result = await tools.request_permission()
        elif tool_name == "get_preferences":
            result = await tools.get_preferences()
        elif tool_name == "set_preferences":
            result = await tools.set_preferences(**args)
        elif tool_name == "dismiss_celebration":
            result = await tools.dismiss_celebration()
        elif tool_name == "reset_streak_marker":
            result = await tools.reset_streak_marker()
        elif tool_name == "handle_tap":
            result = await tools.handle_tap(**args)
        elif tool_name == "get_celebration":
            result = await tools.get_celebration(**args)
        elif tool_name == "test_notification":
            result = await tools.test_notification(**args)
        else:
            return ToolResult(
                tool_name=call.tool_name,
                success=False,
                error=f"Unknown tool: {call.tool_name}",
            )

        return ToolResult(tool_name=call.tool_name, success=True, result=result)
    except Exception as e:
        logger.error("tool_execution_error", tool=call.tool_name, error=str(e), exc_info=True)
        return ToolResult(tool_name=call.tool_name, success=False, error=str(e))


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", redis=_redis_connected)
