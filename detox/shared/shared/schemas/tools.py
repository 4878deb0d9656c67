"""Tool and module manifest schemas for the /execute surface."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ToolParameter(BaseModel):
    """One argument accepted by a tool."""

    name: str
    type: str  # string, integer, boolean, number, array, object
    description: str
    required: bool = True
    enum: list[str] | None = None


class ToolDefinition(BaseModel):
    name: str  # e.g. "notifications.app_foreground"
    description: str
    parameters: list[ToolParameter]


class ModuleManifest(BaseModel):
    """Everything a client needs to call a module."""

    module_name: str
    description: str
    tools: list[ToolDefinition]


class ToolCall(BaseModel):
    tool_name: str
    arguments: dict = {}


class ToolResult(BaseModel):
    """Outcome of one tool call; failures are reported, never raised."""

    tool_name: str
    success: bool
    result: Any = None
    error: str | None = None
