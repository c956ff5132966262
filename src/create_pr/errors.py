"""Exception hierarchy for create-pr.

Adapters translate raw transport failures into these kinds at the boundary;
everything above the adapters only looks at the exception class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from create_pr.models import ProviderTag


class CreatePRError(Exception):
    """Base exception for all create-pr errors."""

    pass


class ConfigurationError(CreatePRError):
    """Raised when the configuration file is missing or cannot be parsed."""

    pass


class ProviderError(CreatePRError):
    """Base class for failures raised by a provider adapter."""

    kind = "ProviderFailure"

    def __init__(
        self,
        provider: ProviderTag,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def describe(self) -> str:
        """Provider, error kind and message on one line."""
        return f"{self.provider.value}: {self.kind} - {self}"


class TransientProviderError(ProviderError):
    """Network, timeout, rate limit or server error. Worth retrying."""

    kind = "TransientProviderFailure"


class PermanentProviderError(ProviderError):
    """Authentication failure, rejected request or unusable reply."""

    kind = "PermanentProviderFailure"


class CredentialMissingError(CreatePRError):
    """Raised when no AI provider has a usable credential."""

    pass


class ProviderUnavailableError(CreatePRError):
    """Raised when an explicitly requested provider is not configured."""

    def __init__(self, provider: ProviderTag) -> None:
        super().__init__(f"Provider {provider.value} not available")
        self.provider = provider


class AllProvidersExhaustedError(CreatePRError):
    """Raised when every available provider failed after its own retries."""

    def __init__(self, failures: list[tuple[ProviderTag, ProviderError]]) -> None:
        self.failures = failures
        details = "; ".join(error.describe() for _, error in failures)
        super().__init__(f"All AI providers failed ({details})")


class ServiceNotFoundError(CreatePRError):
    """Raised when resolving a service key that was never registered."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Service not found: {key}")
        self.key = key
