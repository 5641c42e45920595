from __future__ import annotations

from abc import ABC, abstractmethod


class TextGeneratorAPI(ABC):
    """Abstract base class for the LLM providers that write summaries and replies.

    Subclasses set ``provider`` and receive the model name at construction.
    """

    provider: str = "unknown"

    def __init__(self, model: str) -> None:
        self.model = model

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider!r}, model={self.model!r})"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return generated text for a single user prompt."""
        raise NotImplementedError
