"""Tests for the service container and application context."""

from unittest.mock import AsyncMock, Mock

import pytest

from create_pr.ai.description import DescriptionGenerator
from create_pr.ai.orchestrator import ProviderOrchestrator
from create_pr.ai.parser import ResponseParser
from create_pr.ai.prompts import PromptBuilder
from create_pr.cache import CacheRegistry
from create_pr.config import Config
from create_pr.container import ServiceContainer, ServiceKeys, build_context
from create_pr.errors import ServiceNotFoundError


class TestServiceContainer:
    """Test registration and resolution."""

    def setup_method(self):
        self.container = ServiceContainer()

    def test_singleton_returns_same_instance(self):
        self.container.register_singleton("thing", object)
        assert self.container.resolve("thing") is self.container.resolve("thing")

    def test_transient_returns_new_instances(self):
        self.container.register_transient("thing", object)
        assert self.container.resolve("thing") is not self.container.resolve("thing")

    def test_singleton_factory_called_once(self):
        factory = Mock(return_value="service")
        self.container.register_singleton("thing", factory)

        self.container.resolve("thing")
        self.container.resolve("thing")

        factory.assert_called_once()

    def test_singleton_may_be_none(self):
        factory = Mock(return_value=None)
        self.container.register_singleton("nothing", factory)

        assert self.container.resolve("nothing") is None
        assert self.container.resolve("nothing") is None
        factory.assert_called_once()

    def test_unknown_key_raises(self):
        with pytest.raises(ServiceNotFoundError, match="Service not found: missing") as exc_info:
            self.container.resolve("missing")
        assert exc_info.value.key == "missing"

    def test_has(self):
        self.container.register_singleton("thing", object)
        assert self.container.has("thing")
        assert not self.container.has("other")

    def test_clear_removes_registrations(self):
        self.container.register_singleton("thing", object)
        self.container.clear()
        assert not self.container.has("thing")
        with pytest.raises(ServiceNotFoundError):
            self.container.resolve("thing")

    def test_clear_instances_rebuilds_singletons(self):
        self.container.register_singleton("thing", object)
        first = self.container.resolve("thing")

        self.container.clear_instances()

        assert self.container.has("thing")
        assert self.container.resolve("thing") is not first

    def test_is_instantiated(self):
        self.container.register_singleton("thing", object)
        assert not self.container.is_instantiated("thing")
        self.container.resolve("thing")
        assert self.container.is_instantiated("thing")


class TestAppContext:
    """Test context construction and service wiring."""

    def setup_method(self):
        self.credentials = Mock()
        self.credentials.lookup.return_value = None

    def test_build_context_registers_services(self, tmp_path):
        context = build_context(config=Config(tmp_path), credentials=self.credentials)

        assert isinstance(context.resolve(ServiceKeys.CONFIG), Config)
        assert context.resolve(ServiceKeys.CACHE_REGISTRY) is context.caches
        assert isinstance(context.caches, CacheRegistry)
        assert isinstance(context.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR), ProviderOrchestrator)
        assert isinstance(context.resolve(ServiceKeys.PROMPT_BUILDER), PromptBuilder)
        assert isinstance(context.resolve(ServiceKeys.RESPONSE_PARSER), ResponseParser)

    def test_description_generator_uses_shared_services(self, tmp_path):
        context = build_context(config=Config(tmp_path), credentials=self.credentials)

        generator = context.resolve(ServiceKeys.DESCRIPTION_GENERATOR)

        assert isinstance(generator, DescriptionGenerator)
        assert generator.orchestrator is context.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR)
        assert generator.parser is context.resolve(ServiceKeys.RESPONSE_PARSER)
        assert generator.cache is not None

    def test_contexts_are_isolated(self, tmp_path):
        first = build_context(config=Config(tmp_path), credentials=self.credentials)
        second = build_context(config=Config(tmp_path), credentials=self.credentials)

        assert first.resolve(ServiceKeys.PROMPT_BUILDER) is not second.resolve(
            ServiceKeys.PROMPT_BUILDER
        )
        assert first.caches is not second.caches

    def test_orchestrator_uses_injected_credentials(self, tmp_path):
        context = build_context(config=Config(tmp_path), credentials=self.credentials)
        orchestrator = context.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR)
        assert orchestrator.credentials is self.credentials

    @pytest.mark.asyncio
    async def test_aclose_skips_unbuilt_orchestrator(self, tmp_path):
        context = build_context(config=Config(tmp_path), credentials=self.credentials)

        await context.aclose()

        assert not context.container.is_instantiated(ServiceKeys.PROVIDER_ORCHESTRATOR)

    @pytest.mark.asyncio
    async def test_aclose_closes_orchestrator(self, tmp_path):
        context = build_context(config=Config(tmp_path), credentials=self.credentials)
        orchestrator = context.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR)
        orchestrator.aclose = AsyncMock()

        await context.aclose()

        orchestrator.aclose.assert_awaited_once()
