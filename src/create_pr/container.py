"""Service container and application context.

Services are registered as factories keyed by name. Singletons are built on
first resolution and reused; transients are built on every resolution. The
:class:`AppContext` bundles a container with the configuration and cache
registry so callers pass one explicit object around instead of relying on
process-wide state.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from create_pr.ai.credentials import ConfigCredentialSource, CredentialSource
from create_pr.ai.description import DESCRIPTION_CACHE_NAME, DescriptionGenerator
from create_pr.ai.orchestrator import ProviderOrchestrator, ProviderPrompt
from create_pr.ai.parser import ResponseParser
from create_pr.ai.prompts import PromptBuilder
from create_pr.cache import CacheRegistry
from create_pr.config import Config
from create_pr.errors import ServiceNotFoundError
from create_pr.progress import ProgressCallback
from create_pr.retry import RetryOptions

logger = logging.getLogger(__name__)


class ServiceLifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class ServiceDescriptor:
    """Factory plus lifetime for one registered service."""

    lifetime: ServiceLifetime
    factory: Callable[[], Any]
    instance: Any = None
    has_instance: bool = False


class ServiceContainer:
    """Minimal IoC container with singleton and transient lifetimes."""

    def __init__(self) -> None:
        self._services: dict[str, ServiceDescriptor] = {}

    def register_singleton(self, key: str, factory: Callable[[], Any]) -> None:
        self._services[key] = ServiceDescriptor(ServiceLifetime.SINGLETON, factory)

    def register_transient(self, key: str, factory: Callable[[], Any]) -> None:
        self._services[key] = ServiceDescriptor(ServiceLifetime.TRANSIENT, factory)

    def resolve(self, key: str) -> Any:
        """Return the service registered under ``key``.

        Raises:
            ServiceNotFoundError: If nothing is registered under ``key``
        """
        descriptor = self._services.get(key)
        if descriptor is None:
            raise ServiceNotFoundError(key)

        if descriptor.lifetime is ServiceLifetime.TRANSIENT:
            return descriptor.factory()

        if not descriptor.has_instance:
            logger.debug(f"Creating singleton service {key}")
            descriptor.instance = descriptor.factory()
            descriptor.has_instance = True
        return descriptor.instance

    def has(self, key: str) -> bool:
        return key in self._services

    def is_instantiated(self, key: str) -> bool:
        """True if ``key`` is a singleton that has already been built."""
        descriptor = self._services.get(key)
        return descriptor is not None and descriptor.has_instance

    def clear(self) -> None:
        """Drop every registration."""
        self._services.clear()

    def clear_instances(self) -> None:
        """Forget built singletons; registrations stay."""
        for descriptor in self._services.values():
            descriptor.instance = None
            descriptor.has_instance = False


class ServiceKeys:
    CONFIG = "Config"
    CACHE_REGISTRY = "CacheRegistry"
    PROVIDER_ORCHESTRATOR = "ProviderOrchestrator"
    PROMPT_BUILDER = "PromptBuilder"
    RESPONSE_PARSER = "ResponseParser"
    DESCRIPTION_GENERATOR = "DescriptionGenerator"


@dataclass
class AppContext:
    """Everything a command needs, built once per invocation."""

    config: Config
    caches: CacheRegistry = field(default_factory=CacheRegistry)
    container: ServiceContainer = field(default_factory=ServiceContainer)
    credentials: CredentialSource | None = None
    prompt: ProviderPrompt | None = None
    retry_options: RetryOptions | None = None
    progress_callback: ProgressCallback | None = None
    adapter_kwargs: dict[str, Any] = field(default_factory=dict)

    def resolve(self, key: str) -> Any:
        return self.container.resolve(key)

    async def aclose(self) -> None:
        """Close the orchestrator's HTTP clients if it was ever built."""
        if self.container.is_instantiated(ServiceKeys.PROVIDER_ORCHESTRATOR):
            await self.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR).aclose()


def setup_services(context: AppContext) -> None:
    """Register the application services on the context's container."""
    container = context.container

    container.register_singleton(ServiceKeys.CONFIG, lambda: context.config)
    container.register_singleton(ServiceKeys.CACHE_REGISTRY, lambda: context.caches)
    container.register_singleton(
        ServiceKeys.PROVIDER_ORCHESTRATOR,
        lambda: ProviderOrchestrator(
            credentials=context.credentials or ConfigCredentialSource(context.config),
            prompt=context.prompt,
            retry_options=context.retry_options,
            progress_callback=context.progress_callback,
            **context.adapter_kwargs,
        ),
    )
    container.register_singleton(ServiceKeys.PROMPT_BUILDER, PromptBuilder)
    container.register_singleton(ServiceKeys.RESPONSE_PARSER, ResponseParser)
    container.register_singleton(
        ServiceKeys.DESCRIPTION_GENERATOR,
        lambda: DescriptionGenerator(
            orchestrator=container.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR),
            prompt_builder=container.resolve(ServiceKeys.PROMPT_BUILDER),
            parser=container.resolve(ServiceKeys.RESPONSE_PARSER),
            cache=context.caches.get_cache(DESCRIPTION_CACHE_NAME),
            progress_callback=context.progress_callback,
        ),
    )


def build_context(
    config: Config | None = None,
    credentials: CredentialSource | None = None,
    prompt: ProviderPrompt | None = None,
    retry_options: RetryOptions | None = None,
    progress_callback: ProgressCallback | None = None,
    **adapter_kwargs: Any,
) -> AppContext:
    """Create a fresh context with every service registered.

    Args:
        config: Configuration (default file location if None)
        credentials: Credential source (config file then environment if None)
        prompt: Interactive provider chooser (rich prompt if None)
        retry_options: Retry policy for provider attempts
        progress_callback: Receives progress events from every service
        **adapter_kwargs: Passed to every provider adapter (timeout, transport)
    """
    context = AppContext(
        config=config or Config(),
        credentials=credentials,
        prompt=prompt,
        retry_options=retry_options,
        progress_callback=progress_callback,
        adapter_kwargs=adapter_kwargs,
    )
    setup_services(context)
    return context
