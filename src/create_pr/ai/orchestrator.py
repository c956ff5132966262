"""Provider selection and resilient generation across AI vendors.

The orchestrator resolves which provider to use (explicit, previously
selected, the only configured one, or an interactive choice), runs each
attempt through the retry policy and falls back to the remaining providers,
one after another, when the chosen one gives up.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

from rich.console import Console
from rich.prompt import Prompt

from create_pr.ai.credentials import ConfigCredentialSource, CredentialSource, ProviderCredential
from create_pr.ai.providers import ChunkCallback, ProviderAdapter, create_adapter
from create_pr.errors import (
    AllProvidersExhaustedError,
    CredentialMissingError,
    ProviderError,
    ProviderUnavailableError,
)
from create_pr.models import GenerationResult, ProviderTag
from create_pr.progress import ProgressCallback, ProgressNotifier
from create_pr.retry import RetryOptions, retry

logger = logging.getLogger(__name__)

CREDENTIAL_ENV_KEYS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "COPILOT_API_TOKEN")


@dataclass(frozen=True)
class ProviderChoice:
    """One entry of the interactive provider menu."""

    display_name: str
    value: ProviderTag


class ProviderPrompt(Protocol):
    """Interactive single-choice prompt."""

    async def choose(self, message: str, choices: list[ProviderChoice]) -> ProviderTag: ...


class RichProviderPrompt:
    """Numbered terminal menu built on rich's Prompt."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    async def choose(self, message: str, choices: list[ProviderChoice]) -> ProviderTag:
        # Prompt.ask blocks on stdin, keep it off the event loop
        return await asyncio.to_thread(self._ask, message, choices)

    def _ask(self, message: str, choices: list[ProviderChoice]) -> ProviderTag:
        self.console.print(f"[cyan]{message}[/cyan]")
        for index, choice in enumerate(choices, start=1):
            self.console.print(f"  [bold]{index}[/bold]. {choice.display_name}")

        answer = Prompt.ask(
            "Provider",
            choices=[str(index) for index in range(1, len(choices) + 1)],
            default="1",
            console=self.console,
        )
        return choices[int(answer) - 1].value


AdapterFactory = Callable[..., ProviderAdapter]


class ProviderOrchestrator:
    """Selects AI providers and generates content with retry and fallback."""

    def __init__(
        self,
        credentials: CredentialSource | None = None,
        prompt: ProviderPrompt | None = None,
        retry_options: RetryOptions | None = None,
        adapter_factory: AdapterFactory = create_adapter,
        progress_callback: ProgressCallback | None = None,
        **adapter_kwargs: Any,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            credentials: Credential source (config file + environment by default)
            prompt: Interactive chooser used when several providers are configured
            retry_options: Retry policy applied to every provider attempt
            adapter_factory: Builds an adapter from (tag, api_key, model)
            progress_callback: Receives selection, retry and fallback events
            **adapter_kwargs: Extra keyword arguments for every adapter (timeout, transport)
        """
        self.credentials = credentials or ConfigCredentialSource()
        self.prompt = prompt or RichProviderPrompt()
        self.retry_options = retry_options or RetryOptions()
        self.adapter_factory = adapter_factory
        self.notifier = ProgressNotifier(progress_callback)
        self._adapter_kwargs = adapter_kwargs

        self._selected_provider: ProviderTag | None = None
        self._adapters: dict[ProviderTag, tuple[ProviderCredential, ProviderAdapter]] = {}

    def _resolve_credentials(self) -> dict[ProviderTag, ProviderCredential]:
        found: dict[ProviderTag, ProviderCredential] = {}
        for tag in ProviderTag:
            try:
                credential = self.credentials.lookup(tag)
            except Exception as e:
                logger.debug(f"Credential lookup failed for {tag.value}, skipping: {e}")
                continue

            if credential is None or not credential.api_key.strip():
                continue
            found[tag] = credential
        return found

    def available_providers(self) -> list[ProviderTag]:
        """Providers with a usable credential, in a stable order."""
        return list(self._resolve_credentials())

    def has_provider(self, provider: ProviderTag) -> bool:
        return provider in self._resolve_credentials()

    @property
    def selected_provider(self) -> ProviderTag | None:
        return self._selected_provider

    def reset_selection(self) -> None:
        """Forget the provider chosen earlier in this process."""
        self._selected_provider = None

    async def select_provider(self) -> ProviderTag:
        """Resolve which provider to use.

        Raises:
            CredentialMissingError: If no provider is configured
        """
        if self._selected_provider is not None:
            return self._selected_provider

        available = self.available_providers()
        if not available:
            raise CredentialMissingError(
                "No AI providers configured. Please set "
                f"{', '.join(CREDENTIAL_ENV_KEYS[:-1])}, or {CREDENTIAL_ENV_KEYS[-1]} "
                "(or run 'create-pr ai-auth <provider>')."
            )

        if len(available) == 1:
            self._selected_provider = available[0]
        else:
            choices = [ProviderChoice(tag.display_name, tag) for tag in available]
            self._selected_provider = await self.prompt.choose(
                "Multiple AI providers available. Please select one:", choices
            )

        logger.info(f"Selected AI provider: {self._selected_provider.value}")
        self.notifier.info(
            f"Using {self._selected_provider.display_name}",
            provider=self._selected_provider.value,
        )
        return self._selected_provider

    async def _get_adapter(
        self, provider: ProviderTag, credential: ProviderCredential
    ) -> ProviderAdapter:
        """Reuse the adapter built for this exact credential.

        A rotated key or changed model override replaces (and closes) the
        adapter built for the previous one.
        """
        cached = self._adapters.get(provider)
        if cached is not None:
            cached_credential, adapter = cached
            if cached_credential == credential:
                return adapter
            logger.debug(f"Credential for {provider.value} changed, rebuilding adapter")
            await adapter.aclose()

        adapter = self.adapter_factory(
            provider, credential.api_key, credential.model, **self._adapter_kwargs
        )
        self._adapters[provider] = (credential, adapter)
        return adapter

    def _retry_options_for(self, provider: ProviderTag) -> RetryOptions:
        caller_on_retry = self.retry_options.on_retry

        def on_retry(error: BaseException, attempt: int, delay: float) -> None:
            logger.warning(
                f"{provider.value} attempt {attempt} failed, retrying in {delay:.2f}s: {error}"
            )
            self.notifier.retry(
                f"Retrying {provider.display_name}",
                provider=provider.value,
                attempt=attempt,
                delay=delay,
                error=str(error),
            )
            if caller_on_retry:
                caller_on_retry(error, attempt, delay)

        return replace(self.retry_options, on_retry=on_retry)

    async def _attempt(
        self,
        provider: ProviderTag,
        credential: ProviderCredential,
        prompt: str,
        on_chunk: ChunkCallback | None,
    ) -> GenerationResult:
        adapter = await self._get_adapter(provider, credential)

        async def operation() -> GenerationResult:
            if on_chunk is not None:
                return await adapter.generate_stream(prompt, on_chunk)
            return await adapter.generate(prompt)

        return await retry(operation, self._retry_options_for(provider))

    async def generate_content(
        self,
        prompt: str,
        provider: ProviderTag | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> GenerationResult:
        """Generate text, falling back across providers when none was named.

        Args:
            prompt: Prompt to send
            provider: Explicit provider; disables fallback when given
            on_chunk: Streams text chunks to this callback when given

        Raises:
            ProviderUnavailableError: If the named provider is not configured
            ProviderError: If the named provider fails
            CredentialMissingError: If no provider is configured
            AllProvidersExhaustedError: If every provider failed
        """
        credentials = self._resolve_credentials()

        if provider is not None:
            if provider not in credentials:
                raise ProviderUnavailableError(provider)
            self.notifier.started(f"Generating with {provider.display_name}", provider=provider.value)
            result = await self._attempt(provider, credentials[provider], prompt, on_chunk)
            self.notifier.completed("Generation complete", provider=provider.value)
            return result

        selected = await self.select_provider()
        order = [selected] if selected in credentials else []
        order += [tag for tag in credentials if tag != selected]
        if not order:
            raise CredentialMissingError("No AI providers configured.")

        failures: list[tuple[ProviderTag, ProviderError]] = []
        for index, tag in enumerate(order):
            self.notifier.started(f"Generating with {tag.display_name}", provider=tag.value)
            try:
                result = await self._attempt(tag, credentials[tag], prompt, on_chunk)
            except ProviderError as e:
                failures.append((tag, e))
                logger.warning(f"Provider {tag.value} failed ({e.kind}): {e}")
                if index + 1 < len(order):
                    next_tag = order[index + 1]
                    self.notifier.fallback(
                        f"{tag.display_name} failed, falling back to {next_tag.display_name}",
                        provider=next_tag.value,
                        error=str(e),
                    )
                continue

            self.notifier.completed("Generation complete", provider=tag.value)
            return result

        error = AllProvidersExhaustedError(failures)
        logger.error(str(error))
        self.notifier.error(str(error))
        raise error

    async def aclose(self) -> None:
        """Close every adapter created so far."""
        for _, adapter in self._adapters.values():
            await adapter.aclose()
        self._adapters.clear()
