"""Tests for provider credential lookup."""

import json

from create_pr.ai.credentials import ConfigCredentialSource, ProviderCredential
from create_pr.config import Config
from create_pr.models import ProviderTag


class TestConfigCredentialSource:
    """Test config-then-environment credential resolution."""

    def setup_method(self):
        self.environ: dict[str, str] = {}

    def _source(self, tmp_path, data=None) -> ConfigCredentialSource:
        if data is not None:
            (tmp_path / "env-config.json").write_text(json.dumps(data))
        return ConfigCredentialSource(Config(tmp_path), environ=self.environ)

    def test_nothing_configured(self, tmp_path):
        source = self._source(tmp_path)
        for tag in ProviderTag:
            assert source.lookup(tag) is None

    def test_environment_keys(self, tmp_path):
        self.environ.update({"ANTHROPIC_API_KEY": "sk-ant", "GOOGLE_API_KEY": "g-key"})
        source = self._source(tmp_path)

        assert source.lookup(ProviderTag.CLAUDE) == ProviderCredential("sk-ant")
        assert source.lookup(ProviderTag.GEMINI) == ProviderCredential("g-key")
        assert source.lookup(ProviderTag.OPENAI) is None

    def test_environment_key_order(self, tmp_path):
        self.environ.update({"ANTHROPIC_API_KEY": "first", "CLAUDE_API_KEY": "second"})
        source = self._source(tmp_path)
        assert source.lookup(ProviderTag.CLAUDE).api_key == "first"

    def test_config_wins_over_environment(self, tmp_path):
        self.environ["OPENAI_API_KEY"] = "from-env"
        source = self._source(
            tmp_path,
            {"aiProviders": {"openai": {"apiKey": "from-config", "model": "gpt-4o-mini"}}},
        )

        credential = source.lookup(ProviderTag.OPENAI)

        assert credential == ProviderCredential("from-config", "gpt-4o-mini")

    def test_blank_values_count_as_missing(self, tmp_path):
        self.environ["OPENAI_API_KEY"] = "   "
        source = self._source(tmp_path, {"aiProviders": {"openai": {"apiKey": ""}}})
        assert source.lookup(ProviderTag.OPENAI) is None

    def test_blank_config_falls_back_to_environment(self, tmp_path):
        self.environ["OPENAI_API_KEY"] = "from-env"
        source = self._source(tmp_path, {"aiProviders": {"openai": {"apiKey": " "}}})
        assert source.lookup(ProviderTag.OPENAI).api_key == "from-env"

    def test_blank_api_key_does_not_hide_api_token(self, tmp_path):
        source = self._source(
            tmp_path, {"aiProviders": {"copilot": {"apiKey": "  ", "apiToken": "ghu_token"}}}
        )
        assert source.lookup(ProviderTag.COPILOT).api_key == "ghu_token"

    def test_copilot_config_fallbacks(self, tmp_path):
        source = self._source(tmp_path, {"copilot": {"apiToken": "legacy"}, "github": {"token": "gh"}})
        assert source.lookup(ProviderTag.COPILOT).api_key == "legacy"

        source = self._source(tmp_path, {"github": {"token": "gh"}})
        assert source.lookup(ProviderTag.COPILOT).api_key == "gh"

    def test_copilot_environment(self, tmp_path):
        self.environ["GITHUB_TOKEN"] = "ghp_env"
        source = self._source(tmp_path)
        assert source.lookup(ProviderTag.COPILOT).api_key == "ghp_env"

    def test_broken_config_is_ignored(self, tmp_path):
        (tmp_path / "env-config.json").write_text("{not json")
        self.environ["GEMINI_API_KEY"] = "g-key"
        source = ConfigCredentialSource(Config(tmp_path), environ=self.environ)

        assert source.lookup(ProviderTag.GEMINI).api_key == "g-key"
