"""Ollama client async wrapper module.

Provides an asynchronous interface to an Ollama server for LLM inference.
Exposes the generate() function for streaming or non-streaming text generation.
Raises LLMUnavailableError on connection issues, timeouts and HTTP errors.
"""

import json

import httpx

DEFAULT_HOST = "http://localhost:11434"


class LLMUnavailableError(Exception):
    """Raised when the Ollama server is unavailable or times out."""

    pass


class PromptTooLargeError(Exception):
    """Raised when the LLM prompt exceeds allowed size limits (10,000 chars or 2MB)."""

    pass


PROMPT_CHAR_LIMIT = 10000  # Maximum allowed prompt length in characters
PROMPT_BYTE_LIMIT = 2 * 1024 * 1024  # Maximum allowed prompt size in bytes (2MB)


async def generate(
    model: str,
    prompt: str,
    stream: bool = True,
    *,
    host: str = DEFAULT_HOST,
    temperature: float | None = None,
    timeout: float = 30.0,
) -> str:
    """Generate text from an Ollama server asynchronously.

    Args:
        model (str): The model name to use (e.g., 'qwen2.5', 'llama3').
        prompt (str): The prompt to send to the model.
        stream (bool): Whether to stream the response (default: True).
        host (str): Base URL of the Ollama server.
        temperature (float | None): Sampling temperature, sent as
            ``options.temperature`` when given.
        timeout (float): Request timeout in seconds.

    Returns:
        str: The concatenated response text from the Ollama server.

    Raises:
        LLMUnavailableError: If the Ollama server is unreachable, times out or
            answers with an HTTP error.
        PromptTooLargeError: If the prompt exceeds PROMPT_CHAR_LIMIT or
            PROMPT_BYTE_LIMIT.
    """
    if (
        len(prompt) > PROMPT_CHAR_LIMIT
        or len(prompt.encode("utf-8")) > PROMPT_BYTE_LIMIT
    ):
        raise PromptTooLargeError(
            f"Prompt exceeds {PROMPT_CHAR_LIMIT} characters or "
            f"{PROMPT_BYTE_LIMIT // (1024 * 1024)}MB."
        )
    url = f"{host.rstrip('/')}/api/generate"
    payload: dict[str, object] = {"model": model, "prompt": prompt, "stream": stream}
    if temperature is not None:
        payload["options"] = {"temperature": temperature}
    output = []
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(url, json=payload, timeout=timeout)
            resp.raise_for_status()
            buffer = b""
            async for chunk in resp.aiter_bytes():
                buffer += chunk
                *lines, buffer = buffer.split(b"\n")
                for line in lines:
                    _collect(line, output)
            _collect(buffer, output)
    except httpx.ConnectError as exc:
        raise LLMUnavailableError(f"Ollama server unavailable at {host}") from exc
    except httpx.TimeoutException as exc:
        raise LLMUnavailableError("Ollama request timed out") from exc
    except httpx.HTTPStatusError as exc:
        raise LLMUnavailableError(
            f"Ollama returned HTTP {exc.response.status_code}"
        ) from exc
    return "".join(output)


def _collect(line: bytes, output: list[str]) -> None:
    # Streamed responses are newline-delimited JSON objects with a "response" key.
    if not line.strip():
        return
    data = json.loads(line)
    if "response" in data:
        output.append(data["response"])
