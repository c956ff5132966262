"""Provider adapters for the supported AI vendors.

Every vendor is described by a :class:`ProviderSpec` capability record (URL,
auth headers, request body, reply extraction). A single :class:`ProviderAdapter`
class drives any record, so adding a vendor means adding one record to
``PROVIDER_SPECS``.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from create_pr.errors import PermanentProviderError, ProviderError, TransientProviderError
from create_pr.models import GenerationResult, ProviderTag

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0  # seconds, per HTTP call
MAX_API_TOKENS = 4000
TEMPERATURE = 0.7
USER_AGENT = "create-pr-cli"

CLAUDE_BASE_URL = "https://api.anthropic.com"
OPENAI_BASE_URL = "https://api.openai.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
COPILOT_BASE_URL = "https://api.githubcopilot.com"

ChunkCallback = Callable[[str], None]


def dig(payload: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    current = payload
    for step in path:
        try:
            current = current[step]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def sanitize_text(text: str) -> str:
    """Replace characters that cannot be encoded as UTF-8 (lone surrogates)."""
    return text.encode("utf-8", errors="replace").decode("utf-8")


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class ProviderSpec:
    """Capability record describing one vendor's completion API."""

    tag: ProviderTag
    default_model: str
    env_keys: tuple[str, ...]
    key_url: str
    api_url: Callable[[str, bool], str]
    headers: Callable[[str], dict[str, str]]
    build_body: Callable[[str, str, bool], dict[str, Any]]
    extract_content: Callable[[Any], str | None]
    extract_chunk: Callable[[Any], str | None]

    @property
    def display_name(self) -> str:
        return self.tag.display_name


def _chat_messages(prompt: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": prompt}]


def _claude_body(prompt: str, model: str, stream: bool) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "max_tokens": MAX_API_TOKENS,
        "messages": _chat_messages(prompt),
    }
    if stream:
        body["stream"] = True
    return body


def _claude_chunk(event: Any) -> str | None:
    if dig(event, "type") != "content_block_delta":
        return None
    return _text(dig(event, "delta", "text"))


def _chat_completions_body(prompt: str, model: str, stream: bool) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "messages": _chat_messages(prompt),
        "max_tokens": MAX_API_TOKENS,
        "temperature": TEMPERATURE,
    }
    if stream:
        body["stream"] = True
    return body


def _gemini_url(model: str, stream: bool) -> str:
    if stream:
        return f"{GEMINI_BASE_URL}/models/{model}:streamGenerateContent?alt=sse"
    return f"{GEMINI_BASE_URL}/models/{model}:generateContent"


def _gemini_body(prompt: str, _model: str, _stream: bool) -> dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "maxOutputTokens": MAX_API_TOKENS,
            "temperature": TEMPERATURE,
        },
    }


def _gemini_text(payload: Any) -> str | None:
    return _text(dig(payload, "candidates", 0, "content", "parts", 0, "text"))


PROVIDER_SPECS: dict[ProviderTag, ProviderSpec] = {
    ProviderTag.CLAUDE: ProviderSpec(
        tag=ProviderTag.CLAUDE,
        default_model="claude-sonnet-4-20250514",
        env_keys=("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
        key_url="https://console.anthropic.com/",
        api_url=lambda _model, _stream: f"{CLAUDE_BASE_URL}/v1/messages",
        headers=lambda api_key: {"x-api-key": api_key, "anthropic-version": "2023-06-01"},
        build_body=_claude_body,
        extract_content=lambda payload: _text(dig(payload, "content", 0, "text")),
        extract_chunk=_claude_chunk,
    ),
    ProviderTag.OPENAI: ProviderSpec(
        tag=ProviderTag.OPENAI,
        default_model="gpt-4o",
        env_keys=("OPENAI_API_KEY",),
        key_url="https://platform.openai.com/api-keys",
        api_url=lambda _model, _stream: f"{OPENAI_BASE_URL}/chat/completions",
        headers=lambda api_key: {"Authorization": f"Bearer {api_key}"},
        build_body=_chat_completions_body,
        extract_content=lambda payload: _text(dig(payload, "choices", 0, "message", "content")),
        extract_chunk=lambda event: _text(dig(event, "choices", 0, "delta", "content")),
    ),
    ProviderTag.GEMINI: ProviderSpec(
        tag=ProviderTag.GEMINI,
        default_model="gemini-1.5-pro",
        env_keys=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        key_url="https://aistudio.google.com/app/apikey",
        api_url=_gemini_url,
        headers=lambda api_key: {"x-goog-api-key": api_key},
        build_body=_gemini_body,
        extract_content=_gemini_text,
        extract_chunk=_gemini_text,
    ),
    ProviderTag.COPILOT: ProviderSpec(
        tag=ProviderTag.COPILOT,
        default_model="gpt-4o",
        env_keys=("COPILOT_API_TOKEN", "GITHUB_TOKEN"),
        key_url="https://github.com/settings/tokens",
        api_url=lambda _model, _stream: f"{COPILOT_BASE_URL}/chat/completions",
        headers=lambda api_key: {"Authorization": f"Bearer {api_key}"},
        build_body=_chat_completions_body,
        extract_content=lambda payload: _text(dig(payload, "choices", 0, "message", "content")),
        extract_chunk=lambda event: _text(dig(event, "choices", 0, "delta", "content")),
    ),
}


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the vendor's error message."""
    try:
        message = dig(response.json(), "error", "message")
    except ValueError:
        message = None
    if isinstance(message, str) and message:
        return message
    return response.reason_phrase or f"HTTP {response.status_code}"


class ProviderAdapter:
    """Uniform request/response shape over one vendor's completion API.

    The adapter never retries; retrying and fallback belong to the
    orchestrator. Identity (tag, credential, model) is fixed at construction.
    """

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str,
        model: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter and its HTTP client.

        Args:
            spec: Capability record of the vendor
            api_key: API key or token for the vendor
            model: Model override (defaults to the vendor's default model)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._spec = spec
        self._api_key = api_key
        self._model = model or spec.default_model

        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                **spec.headers(api_key),
            },
            transport=transport,
        )

    @property
    def provider(self) -> ProviderTag:
        return self._spec.tag

    @property
    def model(self) -> str:
        return self._model

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def default_model(self) -> str:
        return self._spec.default_model

    def headers(self) -> dict[str, str]:
        return self._spec.headers(self._api_key)

    def api_url(self, stream: bool = False) -> str:
        return self._spec.api_url(self._model, stream)

    def build_request_body(self, prompt: str, stream: bool = False) -> dict[str, Any]:
        return self._spec.build_body(prompt, self._model, stream)

    def extract_content(self, payload: Any) -> str:
        """Pull the generated text out of a vendor reply.

        Raises:
            PermanentProviderError: If the reply carries no text
        """
        content = self._spec.extract_content(payload)
        if not content:
            raise PermanentProviderError(
                self.provider,
                f"No content received from {self._spec.display_name} API",
            )
        return sanitize_text(content)

    async def generate(self, prompt: str) -> GenerationResult:
        """Send one completion request.

        Raises:
            TransientProviderError: On timeouts, network errors, 429 and 5xx
            PermanentProviderError: On any other failure
        """
        logger.debug(f"Sending request to {self.provider.value} (model {self._model})")
        try:
            response = await self._client.post(
                self.api_url(), json=self.build_request_body(prompt)
            )
            response.raise_for_status()
            content = self.extract_content(response.json())
            result = GenerationResult(content=content, provider=self.provider)
        except Exception as e:
            raise self._wrap_error(e) from e

        logger.info(f"Received {len(content)} chars from {self.provider.value}")
        return result

    async def generate_stream(
        self, prompt: str, on_chunk: ChunkCallback | None = None
    ) -> GenerationResult:
        """Send a streaming completion request.

        ``on_chunk`` is called synchronously with every text chunk, in arrival
        order. The result holds the concatenated chunks.
        """
        chunks: list[str] = []
        logger.debug(f"Streaming request to {self.provider.value} (model {self._model})")
        try:
            async with self._client.stream(
                "POST",
                self.api_url(stream=True),
                json=self.build_request_body(prompt, stream=True),
            ) as response:
                if response.is_error:
                    await response.aread()
                response.raise_for_status()

                async for line in response.aiter_lines():
                    chunk = self._parse_event(line)
                    if chunk is None:
                        continue
                    chunks.append(chunk)
                    if on_chunk:
                        on_chunk(chunk)

            content = "".join(chunks)
            if not content:
                raise PermanentProviderError(
                    self.provider,
                    f"No content received from {self._spec.display_name} API",
                )
            return GenerationResult(content=content, provider=self.provider)
        except Exception as e:
            raise self._wrap_error(e) from e

    def _parse_event(self, line: str) -> str | None:
        """Decode one server-sent-events line into a text chunk."""
        if not line.startswith("data:"):
            return None
        data = line[len("data:") :].strip()
        if not data or data == "[DONE]":
            return None
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable stream event from {self.provider.value}")
            return None
        chunk = self._spec.extract_chunk(event)
        return sanitize_text(chunk) if chunk else None

    def _wrap_error(self, error: Exception) -> ProviderError:
        """Translate a raw transport error into a typed provider error."""
        name = self.provider.value
        if isinstance(error, ProviderError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            detail = _error_message(error.response)
            if status in (401, 403):
                return PermanentProviderError(
                    self.provider,
                    f"Authentication failed for {name}: {detail}. Please check your API key.",
                    status_code=status,
                )
            if status == 429:
                return TransientProviderError(
                    self.provider,
                    f"Rate limit exceeded for {name}: {detail}. Please try again later.",
                    status_code=status,
                )
            if status >= 500:
                return TransientProviderError(
                    self.provider,
                    f"{name} API server error ({status}): {detail}. Please try again later.",
                    status_code=status,
                )
            return PermanentProviderError(
                self.provider,
                f"{name} API error: {detail}",
                status_code=status,
            )

        if isinstance(error, httpx.TimeoutException):
            return TransientProviderError(self.provider, f"{name} API timeout. Please try again.")
        if isinstance(error, httpx.TransportError):
            return TransientProviderError(self.provider, f"{name} API connection error: {error}")
        # json and pydantic validation errors are both ValueErrors
        if isinstance(error, ValueError):
            return PermanentProviderError(self.provider, f"{name} API returned an invalid response: {error}")

        return PermanentProviderError(self.provider, f"{name} API error: {error}")

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.aclose()


def create_adapter(
    provider: ProviderTag,
    api_key: str,
    model: str | None = None,
    **kwargs: Any,
) -> ProviderAdapter:
    """Factory function returning an adapter for ``provider``.

    Raises:
        ValueError: If the provider has no capability record
    """
    spec = PROVIDER_SPECS.get(provider)
    if spec is None:
        raise ValueError(f"Unknown AI provider: {provider}")
    return ProviderAdapter(spec, api_key, model=model, **kwargs)
