"""Credential lookup for AI providers.

The stored configuration file wins over environment variables. Reading the
configuration is best-effort: a missing or broken file simply means "no
configured credential", never an error.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from create_pr.ai.providers import PROVIDER_SPECS
from create_pr.config import Config, EnvironmentConfig
from create_pr.errors import ConfigurationError
from create_pr.models import ProviderTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderCredential:
    """API key (or token) and optional model override for one provider."""

    api_key: str
    model: str | None = None


class CredentialSource(Protocol):
    """Anything able to look up a provider's credential."""

    def lookup(self, provider: ProviderTag) -> ProviderCredential | None: ...


def _usable(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


class ConfigCredentialSource:
    """Credentials from the create-pr config file, then the environment."""

    def __init__(
        self,
        config: Config | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config or Config()
        self.environ = environ if environ is not None else os.environ

    def _load_config(self) -> EnvironmentConfig | None:
        try:
            return self.config.load()
        except ConfigurationError as e:
            logger.debug(f"No usable configuration file: {e}")
            return None

    def _from_config(
        self, provider: ProviderTag, config: EnvironmentConfig
    ) -> tuple[str | None, str | None]:
        """Return (key, model) from the configuration file."""
        settings = getattr(config.ai_providers, provider.value, None) if config.ai_providers else None
        key = (_usable(settings.api_key) or _usable(settings.api_token)) if settings else None
        model = settings.model if settings else None

        if provider is ProviderTag.COPILOT and not _usable(key):
            if config.copilot and _usable(config.copilot.api_token):
                key = config.copilot.api_token
            elif config.github and _usable(config.github.token):
                key = config.github.token

        return _usable(key), model

    def _from_environment(self, provider: ProviderTag) -> str | None:
        for env_key in PROVIDER_SPECS[provider].env_keys:
            value = _usable(self.environ.get(env_key))
            if value:
                return value
        return None

    def lookup(self, provider: ProviderTag) -> ProviderCredential | None:
        """Find a credential for ``provider``.

        Empty or whitespace-only keys count as missing.
        """
        key: str | None = None
        model: str | None = None

        config = self._load_config()
        if config is not None:
            key, model = self._from_config(provider, config)

        if not key:
            key = self._from_environment(provider)

        if not key:
            return None
        return ProviderCredential(api_key=key, model=model or None)
