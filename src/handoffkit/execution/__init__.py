"""Agent execution: provider tool loop rendered as UI chunks."""

from handoffkit.execution.executor import (
    AgentExecutor,
    ExecutionRequest,
    ExecutionResult,
    ExecutionStream,
    StepResult,
)

__all__ = [
    "AgentExecutor",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStream",
    "StepResult",
]
