"""Disambiguation prompt stub for testing.

Records every prompt instead of showing it to a user. The answer is fed
back by the test through RoutingResolver.resolve_choice, the same way the
HTTP route feeds back a real answer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from refdesk.application.ports.chat_platform import DisambiguationPromptProtocol
from refdesk.domain.models.platform import RouteChoiceOption


@dataclass(frozen=True)
class RecordedPrompt:
    """A prompt presented to a user."""

    user_id: str
    prompt: str
    choices: tuple[RouteChoiceOption, ...]

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(choice.value for choice in self.choices)


class DisambiguationPromptStub(DisambiguationPromptProtocol):
    """In-memory stub of the disambiguation UI.

    Usage:
        stub = DisambiguationPromptStub()
        stub.block_user("user-1")   # prompts to user-1 are not delivered
        ...
        assert stub.last_prompt_for("user-2").values == ("session-1", "session-2")
    """

    def __init__(self) -> None:
        self.prompts: list[RecordedPrompt] = []
        self._blocked: set[str] = set()

    def block_user(self, user_id: str) -> None:
        self._blocked.add(user_id)

    def prompts_for(self, user_id: str) -> list[RecordedPrompt]:
        return [p for p in self.prompts if p.user_id == user_id]

    def last_prompt_for(self, user_id: str) -> RecordedPrompt | None:
        prompts = self.prompts_for(user_id)
        return prompts[-1] if prompts else None

    async def present_choices(
        self,
        user_id: str,
        prompt: str,
        choices: Sequence[RouteChoiceOption],
    ) -> bool:
        if user_id in self._blocked or not choices:
            return False
        self.prompts.append(RecordedPrompt(user_id, prompt, tuple(choices)))
        return True
