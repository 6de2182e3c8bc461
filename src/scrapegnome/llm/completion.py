"""Completion service abstraction used by the natural-language extractor."""

from typing import Protocol

from scrapegnome.llm import ollama_client


class CompletionService(Protocol):
    """Anything that turns a prompt into free-form text."""

    async def complete(self, prompt: str, *, temperature: float | None = None) -> str:
        ...


class OllamaCompletionService:
    """CompletionService backed by an Ollama server."""

    def __init__(
        self,
        model: str,
        host: str = ollama_client.DEFAULT_HOST,
        timeout: float = 30.0,
    ) -> None:
        self.model = model
        self.host = host
        self.timeout = timeout

    async def complete(self, prompt: str, *, temperature: float | None = None) -> str:
        return await ollama_client.generate(
            self.model,
            prompt,
            stream=True,
            host=self.host,
            temperature=temperature,
            timeout=self.timeout,
        )

    def __repr__(self) -> str:
        return f"OllamaCompletionService(model={self.model!r}, host={self.host!r})"
