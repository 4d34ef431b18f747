"""The names importable from the top-level package."""

from __future__ import annotations

import handoffkit


class TestPublicAPI:
    def test_version(self) -> None:
        assert isinstance(handoffkit.__version__, str)
        assert handoffkit.__version__ == "0.1.0"

    def test_every_exported_name_resolves(self) -> None:
        for name in handoffkit.__all__:
            obj = getattr(handoffkit, name)
            assert obj is not None, name

    def test_runtime_entry_points(self) -> None:
        assert handoffkit.Agent is not None
        assert handoffkit.AgentRuntime is not None
        assert handoffkit.TurnRequest is not None
        assert handoffkit.UIMessageStream is not None

    def test_submodules_import(self) -> None:
        from handoffkit.memory import mock
        from handoffkit.models import enums
        from handoffkit.orchestration import driver
        from handoffkit.telemetry import console

        assert enums is not None
        assert driver is not None
        assert console is not None
        assert mock is not None

    def test_error_hierarchy(self) -> None:
        assert issubclass(handoffkit.ConfigurationError, handoffkit.HandoffKitError)
        assert issubclass(
            handoffkit.InputGuardrailTripwireTriggered, handoffkit.GuardrailTripwireTriggered
        )
        assert issubclass(handoffkit.MemoryGatewayError, handoffkit.HandoffKitError)
        assert issubclass(handoffkit.ProviderError, handoffkit.HandoffKitError)

    def test_handoff_tool_name(self) -> None:
        assert handoffkit.HANDOFF_TOOL_NAME == "handoff_to_agent"
