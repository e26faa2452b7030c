"""MCP tool endpoints.

The HTTP face of the tool dispatcher. Authentication failures are answered
with an HTTP error before dispatch; tool failures come back as error
envelopes with HTTP 200.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from colater_mcp.api.dependencies import AuthDep, DispatcherDep

router = APIRouter()


class ToolCallRequest(BaseModel):
    """Tool invocation."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


@router.get("/tools/list")
async def list_tools(dispatcher: DispatcherDep) -> dict[str, Any]:
    """List available tools with their input schemas."""
    return {
        "tools": [
            tool.model_dump(by_alias=True, exclude_none=True) for tool in dispatcher.list_tools()
        ]
    }


@router.post("/tools/call")
async def call_tool(
    request: ToolCallRequest,
    identity: AuthDep,
    dispatcher: DispatcherDep,
) -> dict[str, Any]:
    """Run a tool call as the authenticated caller."""
    return await dispatcher.dispatch(request.name, request.arguments, identity=identity)
