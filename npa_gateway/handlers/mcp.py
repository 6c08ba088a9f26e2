# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tool Protocol Handler.

FastAPI router exposing the NPA tools: listing, schema lookup and invocation.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..models import (
    ErrorResponse,
    InvokeToolResponse,
    ListToolsResponse,
    NPATool,
    ToolDomain,
    ToolInvocation,
)
from ..services import ToolRegistry

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/mcp/v1", tags=["MCP"])


def get_registry(request: Request) -> ToolRegistry:
    """Registry built by the application lifespan."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tool registry not initialized",
        )
    return registry


# =============================================================================
# Tools Endpoints
# =============================================================================


@router.get(
    "/tools",
    response_model=ListToolsResponse,
    summary="List available NPA tools",
)
async def list_tools(
    domain: ToolDomain | None = Query(None, description="Filter by resource domain"),
    tag: str | None = Query(None, description="Filter by tag"),
    registry: ToolRegistry = Depends(get_registry),
) -> ListToolsResponse:
    """List all available NPA tools."""
    result = registry.list_tools(domain=domain, tag=tag)
    logger.info("Listed tools", count=result.total_count)
    return result


@router.get(
    "/tools/{tool_name}",
    response_model=NPATool,
    summary="Get tool details",
    responses={
        404: {"model": ErrorResponse, "description": "Tool not found"},
    },
)
async def get_tool(
    tool_name: str,
    registry: ToolRegistry = Depends(get_registry),
) -> NPATool:
    """Get details of a specific tool."""
    tool = registry.get(tool_name)
    if not tool:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool not found: {tool_name}",
        )
    return tool


@router.post(
    "/tools/{tool_name}/invoke",
    response_model=InvokeToolResponse,
    summary="Invoke a tool",
    responses={
        404: {"model": ErrorResponse, "description": "Tool not found"},
    },
)
async def invoke_tool(
    tool_name: str,
    invocation: ToolInvocation,
    registry: ToolRegistry = Depends(get_registry),
) -> InvokeToolResponse:
    """Invoke a tool.

    Handler errors come back inside the result with ``isError`` set; only an
    unknown tool name is reported as an HTTP error.
    """
    if not registry.get(tool_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool not found: {tool_name}",
        )

    # Path wins over body
    invocation.name = tool_name
    result = await registry.invoke(invocation)

    return InvokeToolResponse(
        result=result,
        tool_name=tool_name,
    )
