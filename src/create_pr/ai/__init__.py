"""AI integration module for create-pr.

This module talks to Claude, OpenAI, Gemini and GitHub Copilot over their
HTTP APIs, selects a provider, retries and falls back across providers, and
turns replies into pull request titles, bodies and summaries.
"""

from .credentials import ConfigCredentialSource, CredentialSource, ProviderCredential
from .description import DescriptionGenerator
from .orchestrator import ProviderOrchestrator, RichProviderPrompt
from .parser import ResponseParser
from .prompts import PromptBuilder, parse_diff_stats
from .providers import PROVIDER_SPECS, ProviderAdapter, ProviderSpec, create_adapter

__all__ = [
    "ProviderAdapter",
    "ProviderSpec",
    "PROVIDER_SPECS",
    "create_adapter",
    "ProviderCredential",
    "CredentialSource",
    "ConfigCredentialSource",
    "ProviderOrchestrator",
    "RichProviderPrompt",
    "ResponseParser",
    "PromptBuilder",
    "parse_diff_stats",
    "DescriptionGenerator",
]
