"""Pydantic models for the NPA Gateway."""

from .deletion import (
    CleanedPolicy,
    CleanupAction,
    DeletionOutcome,
    DeletionPlan,
    DeletionValidation,
    DependencyAnalysis,
    DryRunPreview,
    PolicyReference,
    ReferenceType,
    SmartDeleteOptions,
    SmartDeleteResult,
)
from .mcp import (
    ErrorResponse,
    InvokeToolResponse,
    ListToolsResponse,
    NPATool,
    TextContent,
    ToolDomain,
    ToolInputSchema,
    ToolInvocation,
    ToolResult,
)
from .policy import (
    DeviceCondition,
    GroupCondition,
    LocationCondition,
    PolicyCondition,
    PolicyRule,
    PolicyRuleDraft,
    PrivateAppCondition,
    TagCondition,
    UserCondition,
    app_display_names,
)

__all__ = [
    # Policy conditions
    "PolicyCondition",
    "PolicyRule",
    "PolicyRuleDraft",
    "PrivateAppCondition",
    "TagCondition",
    "UserCondition",
    "GroupCondition",
    "LocationCondition",
    "DeviceCondition",
    "app_display_names",
    # Smart delete
    "CleanedPolicy",
    "CleanupAction",
    "DeletionOutcome",
    "DeletionPlan",
    "DeletionValidation",
    "DependencyAnalysis",
    "DryRunPreview",
    "PolicyReference",
    "ReferenceType",
    "SmartDeleteOptions",
    "SmartDeleteResult",
    # Tools
    "ErrorResponse",
    "InvokeToolResponse",
    "ListToolsResponse",
    "NPATool",
    "TextContent",
    "ToolDomain",
    "ToolInputSchema",
    "ToolInvocation",
    "ToolResult",
]
