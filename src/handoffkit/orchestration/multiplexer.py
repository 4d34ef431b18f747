"""Stream multiplexer: one agent's chunk stream in, visible chunks out.

The multiplexer is a fold over the chunk sequence.  Each step updates the
extracted signals (accumulated text, call-id → tool-name map, cached tool
outputs, handoff signal, whether visible content has started) and returns
the chunk to forward, or ``None`` when the chunk belongs to the handoff
tool.  Chunks are forwarded in arrival order with no buffering.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from handoffkit.models.chunks import (
    TextDeltaChunk,
    ToolInputAvailableChunk,
    ToolInputDeltaChunk,
    ToolInputStartChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
    UIChunk,
)
from handoffkit.models.enums import AgentStatus
from handoffkit.orchestration.handoff import HandoffSignal, is_handoff_tool
from handoffkit.streaming.writer import UIMessageStreamWriter, write_agent_status

logger = logging.getLogger("handoffkit.orchestration.multiplexer")

_TOOL_CHUNKS = (
    ToolInputStartChunk,
    ToolInputDeltaChunk,
    ToolInputAvailableChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
)


def chunk_tool_name(chunk: UIChunk, tool_names: Mapping[str, str]) -> str | None:
    """Tool name a chunk belongs to, or ``None`` for non-tool chunks."""
    if isinstance(chunk, ToolInputStartChunk | ToolInputAvailableChunk):
        return chunk.tool_name
    if isinstance(chunk, _TOOL_CHUNKS):
        return tool_names.get(chunk.tool_call_id)
    return None


def is_internal_chunk(chunk: UIChunk, tool_names: Mapping[str, str]) -> bool:
    """True iff *chunk* belongs to a handoff-tool call."""
    return is_handoff_tool(chunk_tool_name(chunk, tool_names))


@dataclass
class ExtractedSignals:
    """Side-channel data pulled out of one agent's stream."""

    text: str = ""
    tool_names: dict[str, str] = field(default_factory=dict)
    tool_outputs: dict[str, Any] = field(default_factory=dict)
    handoff: HandoffSignal | None = None
    # Set by the first text delta or non-handoff tool start
    content_started: bool = False


class StreamMultiplexer:
    """Classifies and forwards one agent's chunks.

    With *agent* set, :meth:`pump` writes a ``completing`` status for that
    agent right before its first visible content.
    """

    def __init__(self, agent: str | None = None) -> None:
        self.agent = agent
        self.signals = ExtractedSignals()

    def step(self, chunk: UIChunk) -> UIChunk | None:
        signals = self.signals
        if isinstance(chunk, ToolInputStartChunk | ToolInputAvailableChunk):
            signals.tool_names.setdefault(chunk.tool_call_id, chunk.tool_name)

        internal = is_internal_chunk(chunk, signals.tool_names)

        if isinstance(chunk, ToolOutputAvailableChunk):
            name = signals.tool_names.get(chunk.tool_call_id)
            if internal:
                signal = HandoffSignal.parse(chunk.output)
                if signal is not None:
                    signals.handoff = signal
                    logger.debug("Extracted handoff signal to %s", signal.target_agent)
            elif name is not None:
                signals.tool_outputs[name] = chunk.output
        elif isinstance(chunk, TextDeltaChunk):
            signals.text += chunk.delta

        if internal:
            return None
        if isinstance(chunk, TextDeltaChunk | ToolInputStartChunk):
            signals.content_started = True
        return chunk

    async def pump(
        self,
        source: AsyncIterable[UIChunk],
        writer: UIMessageStreamWriter,
    ) -> ExtractedSignals:
        """Forward every visible chunk of *source* to *writer*."""
        async for chunk in source:
            started = self.signals.content_started
            forwarded = self.step(chunk)
            if forwarded is None:
                continue
            if self.agent is not None and not started and self.signals.content_started:
                write_agent_status(writer, AgentStatus.COMPLETING, self.agent)
            writer.write(forwarded)
        return self.signals


def fold_chunks(chunks: Iterable[UIChunk]) -> tuple[list[UIChunk], ExtractedSignals]:
    """Run the multiplexer over an in-memory sequence."""
    mux = StreamMultiplexer()
    forwarded = [out for chunk in chunks if (out := mux.step(chunk)) is not None]
    return forwarded, mux.signals
