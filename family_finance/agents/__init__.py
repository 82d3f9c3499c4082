"""AI agents package."""

from family_finance.agents.assistant import (
    AssistantError,
    AssistantNetworkError,
    AssistantResponseError,
    FinanceAssistant,
)
from family_finance.agents.interpreter import (
    ActionInterpreter,
    decode_response,
    strip_code_fence,
)
from family_finance.agents.voice import ListenResult, VoiceInput

__all__ = [
    "ActionInterpreter",
    "AssistantError",
    "AssistantNetworkError",
    "AssistantResponseError",
    "FinanceAssistant",
    "ListenResult",
    "VoiceInput",
    "decode_response",
    "strip_code_fence",
]
