"""Pull request description pipeline.

This module wires the prompt → provider → parser pipeline that turns Jira and
git context into a pull request title, body and summary.
"""

import hashlib
import logging

from create_pr.ai.orchestrator import ProviderOrchestrator
from create_pr.ai.parser import ResponseParser
from create_pr.ai.prompts import PromptBuilder
from create_pr.ai.providers import ChunkCallback
from create_pr.cache import Cache, with_cache
from create_pr.models import GenerateDescriptionOptions, GenerationResult, ParsedContent
from create_pr.progress import ProgressCallback, ProgressNotifier

logger = logging.getLogger(__name__)

DESCRIPTION_CACHE_NAME = "pr-descriptions"


def cache_key(prompt: str, options: GenerateDescriptionOptions) -> str:
    """Stable key for a prompt sent to a given (or any) provider."""
    provider = options.provider.value if options.provider else "auto"
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
    return f"{provider}:{digest}"


class DescriptionGenerator:
    """Generates pull request descriptions through the provider orchestrator."""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        prompt_builder: PromptBuilder | None = None,
        parser: ResponseParser | None = None,
        cache: Cache[GenerationResult] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            orchestrator: Provider orchestrator used for generation
            prompt_builder: Prompt renderer (creates default if None)
            parser: Reply parser (creates default if None)
            cache: Cache for generated replies; caching is off when None
            progress_callback: Receives pipeline progress events
        """
        self.orchestrator = orchestrator
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()
        self.cache = cache
        self.notifier = ProgressNotifier(progress_callback)

    async def generate_pr_description(
        self,
        options: GenerateDescriptionOptions,
        on_chunk: ChunkCallback | None = None,
        use_cache: bool = True,
    ) -> ParsedContent:
        """Generate a pull request description.

        When ``options.provider`` is None the orchestrator is free to fall back
        across every configured provider.

        Args:
            options: Ticket, changes, template and optional provider
            on_chunk: Streams text chunks to this callback when given
            use_cache: Reuse a cached reply for an identical prompt

        Returns:
            Parsed title, body and summary
        """
        self.notifier.progress(f"Building prompt for {options.jira_ticket.key}")
        prompt = self.prompt_builder.build_prompt(options)

        async def generate() -> GenerationResult:
            return await self.orchestrator.generate_content(
                prompt, provider=options.provider, on_chunk=on_chunk
            )

        if use_cache and self.cache is not None:
            key = cache_key(prompt, options)
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"Reusing cached description for {options.jira_ticket.key}")
                if on_chunk is not None:
                    on_chunk(cached.content)
                result = cached
            else:
                result = await with_cache(self.cache, key, generate)
        else:
            result = await generate()

        logger.info(f"Generated description with {result.provider.value}")
        self.notifier.progress("Parsing AI response", provider=result.provider.value)
        content = self.parser.parse(result, result.provider)
        self.notifier.completed(f"Description ready: {content.title}", provider=result.provider.value)
        return content
