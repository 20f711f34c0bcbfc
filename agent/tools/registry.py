from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping

from langchain_core.messages import ToolMessage
from langchain_core.tools import BaseTool
from pydantic import BaseModel, ValidationError


logger = logging.getLogger("chatdpt.tools")


def _error_text(name: str, reason: str) -> str:
    return f"Error performing {name}: {reason}. Please try again."


def _validation_reason(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid arguments"
    ctx = errors[0].get("ctx") or {}
    if ctx.get("error") is not None:
        return str(ctx["error"])
    return errors[0].get("msg", "invalid arguments")


class ToolRegistry:
    """Tool name to typed handler, with failures reported in-band as tool results."""

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def definitions(self) -> List[BaseTool]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(self, call: Mapping[str, Any]) -> ToolMessage:
        name = call.get("name") or ""
        call_id = call.get("id") or ""
        args = call.get("args")

        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Model requested unknown tool: %s", name)
            return ToolMessage(
                content=_error_text(name or "tool", "unknown tool"),
                tool_call_id=call_id,
                name=name,
            )

        if not isinstance(args, dict):
            return ToolMessage(
                content=_error_text(name, "arguments must be a JSON object"),
                tool_call_id=call_id,
                name=name,
            )

        # Validate against the declared schema before the handler runs
        schema = tool.args_schema
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            try:
                schema.model_validate(args)
            except ValidationError as exc:
                reason = _validation_reason(exc)
                logger.warning("Rejected %s call %s: %s", name, call_id, reason)
                return ToolMessage(content=_error_text(name, reason), tool_call_id=call_id, name=name)

        try:
            result = await tool.ainvoke(args)
        except Exception as exc:
            logger.error("Error in %s: %s", name, exc)
            return ToolMessage(content=_error_text(name, str(exc)), tool_call_id=call_id, name=name)

        return ToolMessage(content=str(result), tool_call_id=call_id, name=name)

    def reject(self, invalid_call: Mapping[str, Any]) -> ToolMessage:
        """Answer a tool call whose argument payload could not be parsed."""
        name = invalid_call.get("name") or "tool"
        logger.warning(
            "Model sent unparseable arguments for %s: %s", name, invalid_call.get("error")
        )
        return ToolMessage(
            content=_error_text(name, "arguments were not valid JSON"),
            tool_call_id=invalid_call.get("id") or "",
            name=name,
        )
