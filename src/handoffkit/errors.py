"""Exception hierarchy for HandoffKit."""

from __future__ import annotations


class HandoffKitError(Exception):
    """Base exception for all HandoffKit errors."""


class ConfigurationError(HandoffKitError):
    """Turn request or agent configuration is invalid."""


class AgentExecutionError(HandoffKitError):
    """An agent's underlying execution failed during a round."""

    def __init__(self, agent: str, message: str) -> None:
        super().__init__(f"Agent '{agent}' failed: {message}")
        self.agent = agent


class GuardrailTripwireTriggered(HandoffKitError):
    """A guardrail blocked the turn.

    Attributes:
        guardrail: Name of the guardrail that tripped.
        message: User-facing message supplied by the guardrail.
    """

    def __init__(self, guardrail: str, message: str) -> None:
        super().__init__(message)
        self.guardrail = guardrail
        self.message = message


class InputGuardrailTripwireTriggered(GuardrailTripwireTriggered):
    """An input guardrail blocked the inbound message."""


class OutputGuardrailTripwireTriggered(GuardrailTripwireTriggered):
    """An output guardrail blocked an agent's response."""


class GuardrailExecutionError(HandoffKitError):
    """A guardrail raised instead of returning a result."""

    def __init__(self, guardrail: str, cause: BaseException) -> None:
        super().__init__(f"Guardrail '{guardrail}' failed: {cause}")
        self.guardrail = guardrail
        self.cause = cause


class ToolCallError(HandoffKitError):
    """A tool raised while executing."""

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        super().__init__(f"Error executing tool '{tool_name}': {cause}")
        self.tool_name = tool_name
        self.cause = cause


class ToolPermissionDeniedError(HandoffKitError):
    """A tool call was rejected by the agent's tool policy."""

    def __init__(self, tool_name: str, reason: str | None = None) -> None:
        message = f"Tool '{tool_name}' is not permitted by the agent's tool policy."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.tool_name = tool_name
        self.reason = reason


class MemoryGatewayError(HandoffKitError):
    """A memory gateway call failed."""


class ProviderError(HandoffKitError):
    """A model provider call failed.

    Attributes:
        retryable: Whether repeating the request may succeed.
        provider: Name of the provider that raised.
        status_code: HTTP status from the provider, when there is one.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        provider: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.provider = provider
        self.status_code = status_code
