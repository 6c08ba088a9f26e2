"""NPA Gateway services."""

from .dependency_analyzer import (
    AppIdentity,
    PolicyDependencyAnalyzer,
    classify_reference,
    plan_rule_cleanup,
)
from .resolver import ResourceResolver, resolve
from .resources import ResourceAPI
from .smart_delete import SmartDeleter
from .tool_handlers import NPAToolHandlers
from .tool_registry import ToolRegistry

__all__ = [
    "AppIdentity",
    "NPAToolHandlers",
    "PolicyDependencyAnalyzer",
    "ResourceAPI",
    "ResourceResolver",
    "SmartDeleter",
    "ToolRegistry",
    "classify_reference",
    "plan_rule_cleanup",
    "resolve",
]
