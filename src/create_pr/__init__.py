"""create-pr - AI-written pull request descriptions from Jira and git context.

Library API:

    from create_pr import build_context, ServiceKeys

    context = build_context()
    generator = context.resolve(ServiceKeys.DESCRIPTION_GENERATOR)
    content = await generator.generate_pr_description(options)
"""

__version__ = "0.1.0"

from create_pr.config import Config
from create_pr.container import AppContext, ServiceContainer, ServiceKeys, build_context
from create_pr.errors import (
    AllProvidersExhaustedError,
    ConfigurationError,
    CreatePRError,
    CredentialMissingError,
    PermanentProviderError,
    ProviderError,
    ProviderUnavailableError,
    ServiceNotFoundError,
    TransientProviderError,
)
from create_pr.models import GenerateDescriptionOptions, GenerationResult, ParsedContent, ProviderTag

__all__ = [
    # Core API
    "build_context",
    "AppContext",
    "ServiceContainer",
    "ServiceKeys",
    "Config",
    # Models
    "ProviderTag",
    "GenerationResult",
    "ParsedContent",
    "GenerateDescriptionOptions",
    # Exceptions
    "CreatePRError",
    "ConfigurationError",
    "ProviderError",
    "TransientProviderError",
    "PermanentProviderError",
    "CredentialMissingError",
    "ProviderUnavailableError",
    "AllProvidersExhaustedError",
    "ServiceNotFoundError",
    # Metadata
    "__version__",
]
