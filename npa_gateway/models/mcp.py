# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tool Models.

Tool definitions, invocations and results exchanged with the tool router.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Tool Type Constants
# =============================================================================


class ToolDomain(str, Enum):
    """Resource domains exposed as tools."""

    PUBLISHERS = "publishers"
    PRIVATE_APPS = "private_apps"
    POLICY = "policy"
    LOCAL_BROKERS = "local_brokers"
    UPGRADE_PROFILES = "upgrade_profiles"


# =============================================================================
# Tool Models
# =============================================================================


class ToolInputSchema(BaseModel):
    """JSON Schema for tool input."""

    type: Literal["object"] = "object"
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class NPATool(BaseModel):
    """Action-based tool with npa_{domain} naming.

    Each tool takes an ``action`` argument selecting the operation, e.g.
    ``{"action": "list"}`` or ``{"action": "get", "id": "web-app"}``.
    """

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Human-readable tool description")
    input_schema: ToolInputSchema = Field(
        default_factory=ToolInputSchema,
        alias="inputSchema",
        description="JSON Schema for tool input",
    )
    domain: ToolDomain = Field(..., description="Resource domain")
    handler: str = Field(..., description="Handler method on NPAToolHandlers")
    category: str | None = Field(None, description="Tool category")
    tags: list[str] = Field(default_factory=list, description="Categorization tags")
    version: str = Field("1.0.0", description="Tool version")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure tool names follow the npa_* convention."""
        if not v.startswith("npa_"):
            raise ValueError(f"Tool name must start with 'npa_', got: {v}")
        return v

    @property
    def actions(self) -> list[str]:
        """Allowed values of the ``action`` argument."""
        action = self.input_schema.properties.get("action", {})
        return list(action.get("enum", []))


class ToolInvocation(BaseModel):
    """Request to invoke a tool."""

    name: str = Field("", description="Tool name to invoke")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Tool arguments"
    )
    request_id: str | None = Field(None, description="Optional request ID for tracing")


class TextContent(BaseModel):
    """Text content in tool response."""

    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """Result of a tool invocation."""

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = Field(False, alias="isError")

    request_id: str | None = Field(None, description="Request ID for tracing")
    latency_ms: int | None = Field(None, description="Handler latency in milliseconds")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Response Models
# =============================================================================


class ListToolsResponse(BaseModel):
    """Response for listing tools."""

    tools: list[NPATool] = Field(default_factory=list)
    total_count: int = Field(0)

    model_config = ConfigDict(populate_by_name=True)


class InvokeToolResponse(BaseModel):
    """Response for tool invocation."""

    result: ToolResult
    tool_name: str = Field(..., alias="toolName")
    invoked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error message")
    code: str = Field("INTERNAL_ERROR", description="Error code")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
