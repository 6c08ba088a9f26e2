# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tool Registry.

Holds the npa_* tool definitions and routes invocations to the handler
method named by each tool. Handler output and errors are both wrapped in a
ToolResult so callers never see a raw exception.
"""

import json
import time
from typing import Any

import structlog

from ..errors import NPAError, NPAErrorCode, InvalidActionError, error_result
from ..models import ListToolsResponse, NPATool, TextContent, ToolDomain, ToolInvocation, ToolResult
from ..tools import NPA_TOOLS
from .tool_handlers import NPAToolHandlers

logger = structlog.get_logger(__name__)


def _json_result(payload: Any, is_error: bool = False) -> ToolResult:
    return ToolResult(
        content=[TextContent(text=json.dumps(payload, default=str))],
        is_error=is_error,
    )


class ToolRegistry:
    """Registry of NPA tools bound to their handlers."""

    def __init__(self, handlers: NPAToolHandlers, tools: list[NPATool] | None = None):
        self.handlers = handlers
        self._tools: dict[str, NPATool] = {}
        for tool in NPA_TOOLS if tools is None else tools:
            self.register(tool)

    def register(self, tool: NPATool) -> None:
        """Register a tool; its handler must exist on the handlers object."""
        if not callable(getattr(self.handlers, tool.handler, None)):
            raise ValueError(f"Tool {tool.name} references unknown handler {tool.handler}")
        self._tools[tool.name] = tool
        logger.debug("Registered tool", tool_name=tool.name, handler=tool.handler)

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> NPATool | None:
        return self._tools.get(name)

    def list_tools(
        self,
        domain: ToolDomain | str | None = None,
        tag: str | None = None,
    ) -> ListToolsResponse:
        """List tools, optionally filtered by domain and tag."""
        tools = list(self._tools.values())
        if domain:
            tools = [t for t in tools if t.domain == ToolDomain(domain)]
        if tag:
            tools = [t for t in tools if tag in t.tags]
        return ListToolsResponse(tools=tools, total_count=len(tools))

    async def invoke(self, invocation: ToolInvocation) -> ToolResult:
        """Invoke a tool.

        Returns:
            ToolResult whose text is the JSON-encoded handler output, or the
            JSON-encoded error with ``is_error`` set
        """
        start_time = time.time()
        tool = self.get(invocation.name)
        if tool is None:
            result = _json_result(
                error_result(
                    NPAErrorCode.TOOL_NOT_FOUND,
                    f"Tool not found: {invocation.name}",
                    details={"tool_name": invocation.name},
                ),
                is_error=True,
            )
            result.request_id = invocation.request_id
            return result

        arguments = dict(invocation.arguments)
        action = arguments.pop("action", None)

        logger.info(
            "Invoking tool",
            tool_name=tool.name,
            action=action,
            request_id=invocation.request_id,
        )

        try:
            if action not in tool.actions:
                raise InvalidActionError(str(action), tool.actions)
            handler = getattr(self.handlers, tool.handler)
            result = _json_result(await handler(action, arguments))
        except NPAError as e:
            logger.warning(
                "Tool invocation rejected",
                tool_name=tool.name,
                action=action,
                error_code=e.code.value,
                error=e.message,
            )
            result = _json_result(e.to_tool_result(), is_error=True)
        except Exception as e:
            logger.exception("Tool invocation failed", tool_name=tool.name, action=action, error=str(e))
            result = _json_result(
                error_result(NPAErrorCode.INTERNAL_ERROR, f"Tool invocation failed: {e}"),
                is_error=True,
            )

        result.latency_ms = int((time.time() - start_time) * 1000)
        result.request_id = invocation.request_id
        return result
