"""Configuration management for create-pr."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich import print

from create_pr.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIRECTORY_NAME = ".create-pr"
CONFIG_FILE_NAME = "env-config.json"

AI_PROVIDER_SECTIONS = ("claude", "openai", "gemini", "copilot")


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class JiraConfig(_Section):
    """Jira connection settings."""

    base_url: str | None = Field(default=None, alias="baseUrl")
    username: str | None = None
    api_token: str | None = Field(default=None, alias="apiToken")
    project_key: str | None = Field(default=None, alias="projectKey")


class GitHubConfig(_Section):
    """GitHub settings. The token doubles as a Copilot credential."""

    token: str | None = None
    default_branch: str = Field(default="main", alias="defaultBranch")


class CopilotConfig(_Section):
    """Legacy top-level Copilot section."""

    api_token: str | None = Field(default=None, alias="apiToken")


class ProviderSettings(_Section):
    """Credential and model override for a single AI provider."""

    api_key: str | None = Field(default=None, alias="apiKey")
    api_token: str | None = Field(default=None, alias="apiToken")
    model: str | None = None


class AIProvidersConfig(_Section):
    """Per-provider AI settings."""

    claude: ProviderSettings | None = None
    openai: ProviderSettings | None = None
    gemini: ProviderSettings | None = None
    copilot: ProviderSettings | None = None


class EnvironmentConfig(_Section):
    """Schema of ``~/.create-pr/env-config.json``."""

    jira: JiraConfig | None = None
    github: GitHubConfig | None = None
    copilot: CopilotConfig | None = None
    ai_providers: AIProvidersConfig | None = Field(default=None, alias="aiProviders")
    created_at: str | None = Field(default=None, alias="createdAt")
    version: str | None = None


class Config:
    """Manage create-pr configuration and AI API key storage."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config with default paths.

        Args:
            config_dir: Override for the configuration directory
                (defaults to ``~/.create-pr``)
        """
        self.config_dir = config_dir or Path.home() / CONFIG_DIRECTORY_NAME
        self.config_file = self.config_dir / CONFIG_FILE_NAME

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.chmod(0o700)

    def exists(self) -> bool:
        return self.config_file.exists()

    def load(self) -> EnvironmentConfig:
        """Load and validate the configuration file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        if not self.config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found at {self.config_file}. "
                "Run 'create-pr ai-auth <provider>' to create it."
            )

        try:
            with self.config_file.open(encoding="utf-8") as f:
                data = json.load(f)
            return EnvironmentConfig.model_validate(data)
        except (json.JSONDecodeError, OSError, ValidationError) as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}") from e

    def get_section(self, name: str) -> Any:
        """Return one top-level section of the configuration (or None).

        Raises:
            ConfigurationError: If the configuration cannot be loaded
        """
        config = self.load()
        if name in ("aiProviders", "ai_providers"):
            return config.ai_providers
        return getattr(config, name, None)

    def get_ai_api_key(self, provider: str) -> str | None:
        """Get the stored API key for an AI provider, None if absent or unreadable."""
        try:
            section = self.get_section("aiProviders")
        except ConfigurationError:
            return None
        settings = getattr(section, provider, None) if section else None
        if settings is None:
            return None
        return settings.api_key or settings.api_token

    def set_ai_api_key(self, provider: str, api_key: str) -> None:
        """Store an AI provider API key.

        Args:
            provider: One of claude, openai, gemini, copilot
            api_key: Key or token to store
        """
        if provider not in AI_PROVIDER_SECTIONS:
            raise ValueError(f"Unknown AI provider: {provider}")

        config_data = self._load_raw()
        providers = config_data.setdefault("aiProviders", {})
        field = "apiToken" if provider == "copilot" else "apiKey"
        providers.setdefault(provider, {})[field] = api_key

        self._save_raw(config_data)
        print(f"[green]✓[/green] {provider} API key stored securely in {self.config_file}")

    def remove_ai_api_key(self, provider: str) -> bool:
        """Remove a stored AI provider API key.

        Returns:
            True if a key was removed
        """
        config_data = self._load_raw()
        settings = config_data.get("aiProviders", {}).get(provider)
        if not settings or not (settings.get("apiKey") or settings.get("apiToken")):
            print(f"[yellow]No {provider} API key is currently stored[/yellow]")
            return False

        settings.pop("apiKey", None)
        settings.pop("apiToken", None)
        if not settings:
            config_data["aiProviders"].pop(provider)

        self._save_raw(config_data)
        print(f"[green]✓[/green] {provider} API key removed from local storage")
        return True

    def list_ai_api_keys(self) -> dict[str, bool]:
        """Report which AI providers have a stored key."""
        return {
            provider: self.get_ai_api_key(provider) is not None
            for provider in AI_PROVIDER_SECTIONS
        }

    def _load_raw(self) -> dict[str, Any]:
        """Load existing config or return empty dict."""
        if not self.config_file.exists():
            return {}

        try:
            with self.config_file.open(encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save_raw(self, config_data: dict[str, Any]) -> None:
        self._ensure_config_dir()
        with self.config_file.open("w", encoding="utf-8") as f:
            json.dump(config_data, f, indent=2)
        # Restrictive permissions: the file holds API keys
        self.config_file.chmod(0o600)

    def get_config_info(self) -> dict[str, Any]:
        """Get information about current configuration.

        Returns:
            Dictionary with config status information
        """
        config_exists = self.config_file.exists()

        return {
            "config_file": str(self.config_file),
            "config_exists": config_exists,
            "ai_api_keys": self.list_ai_api_keys(),
            "config_file_permissions": oct(self.config_file.stat().st_mode)[-3:]
            if config_exists
            else None,
        }
