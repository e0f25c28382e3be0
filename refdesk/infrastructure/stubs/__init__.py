"""In-memory platform stubs for tests and local development.

Available stubs:
- ChatPlatformStub: Communities, private sessions and sent messages
- DisambiguationPromptStub: Records disambiguation prompts
"""

from refdesk.infrastructure.stubs.chat_platform_stub import (
    ChatPlatformStub,
    StubMessage,
    StubSession,
)
from refdesk.infrastructure.stubs.disambiguation_prompt_stub import (
    DisambiguationPromptStub,
    RecordedPrompt,
)

__all__: list[str] = [
    "ChatPlatformStub",
    "DisambiguationPromptStub",
    "RecordedPrompt",
    "StubMessage",
    "StubSession",
]
