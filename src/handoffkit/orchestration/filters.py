"""Handoff input filters.

A filter rewrites :class:`HandoffInputData` before the target agent runs.
Filters may be sync or async; :func:`apply_input_filter` awaits either.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import replace
from typing import Any

from handoffkit.orchestration.handoff import HandoffInputData, InputFilter, ToolOutput
from handoffkit.providers.ai.base import AIMessage

logger = logging.getLogger("handoffkit.orchestration.filters")

_DATA_NOTE = (
    "**IMPORTANT**: Only use this data if it's DIRECTLY relevant to the current user "
    "question. If the user is asking about something different, ignore this data and "
    "call the appropriate tools."
)
_PLACEHOLDER_REQUEST = "Please help with the request using the available data."


def _summarize(name: str, value: Any) -> str:
    if isinstance(value, list | tuple):
        return f"Available {name} data: {len(value)} items found"
    if isinstance(value, dict):
        return f"Available {name} data: {json.dumps(value, default=str)}"
    return f"Available {name} data: {value}"


def collect_tool_outputs(items: list[AIMessage | ToolOutput]) -> dict[str, Any]:
    """Tool results by tool name, later results overriding earlier ones."""
    outputs: dict[str, Any] = {}
    for item in items:
        if isinstance(item, ToolOutput):
            if item.result is not None:
                outputs[item.tool_name] = item.result
        else:
            for part in item.tool_results:
                if part.result:
                    outputs[part.name] = part.result
    return outputs


def default_input_filter(data: HandoffInputData) -> HandoffInputData:
    """Carry history unchanged and fold captured tool outputs into a system message.

    With no captured outputs the data is returned as is.  An empty history
    gets a placeholder user message so the target agent has a request.
    """
    outputs = collect_tool_outputs(data.new_items)
    if not outputs:
        return data
    summary = "\n".join(_summarize(name, value) for name, value in outputs.items())
    history = list(data.input_history)
    if not history:
        history.append(AIMessage(role="user", content=_PLACEHOLDER_REQUEST))
    history.append(
        AIMessage(
            role="system",
            content=f"Available data from previous agent:\n{summary}\n\n{_DATA_NOTE}",
        )
    )
    logger.debug("Folded %d tool output(s) into handoff history", len(outputs))
    return replace(data, input_history=history)


def _is_tool_message(item: AIMessage | ToolOutput) -> bool:
    if isinstance(item, ToolOutput):
        return True
    if item.role == "tool":
        return True
    return item.role == "assistant" and bool(item.tool_calls) and not item.text


def remove_all_tools(data: HandoffInputData) -> HandoffInputData:
    """Drop tool results and tool-call-only assistant messages from every list."""
    return replace(
        data,
        input_history=[m for m in data.input_history if not _is_tool_message(m)],
        pre_handoff_items=[m for m in data.pre_handoff_items if not _is_tool_message(m)],
        new_items=[m for m in data.new_items if not _is_tool_message(m)],
    )


def keep_last_n_messages(n: int) -> InputFilter:
    """Filter keeping only the last *n* entries of each list."""
    if n < 0:
        raise ValueError("keep_last_n_messages requires n >= 0")

    def _window(items: list[Any]) -> list[Any]:
        return items[-n:] if n else []

    def _filter(data: HandoffInputData) -> HandoffInputData:
        return replace(
            data,
            input_history=_window(data.input_history),
            pre_handoff_items=_window(data.pre_handoff_items),
            new_items=_window(data.new_items),
        )

    return _filter


async def apply_input_filter(
    input_filter: InputFilter,
    data: HandoffInputData,
) -> HandoffInputData:
    result = input_filter(data)
    if inspect.isawaitable(result):
        result = await result
    return result
