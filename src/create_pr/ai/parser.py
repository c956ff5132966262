"""Turn raw AI replies into pull request title, body and summary.

Parsing is total: whatever the provider sent back (JSON, fenced JSON, prose,
an unexpected envelope or nothing at all) the result has a non-empty title,
body and summary.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from create_pr.ai.providers import PROVIDER_SPECS, sanitize_text
from create_pr.models import GenerationResult, ParsedContent, ProviderTag

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Pull Request"
DEFAULT_BODY = "No description provided."
MAX_TITLE_LENGTH = 100
MAX_SUMMARY_LENGTH = 300

_FENCED_BLOCK = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_TITLE_LINE = re.compile(r"^\s*Title:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
_SUMMARY_PATTERNS = (
    re.compile(r"^\s*Summary:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^#{2,3}\s*Summary\s*\n+\s*(.+)$", re.IGNORECASE | re.MULTILINE),
)
_SENTENCE = re.compile(r"(.+?[.!?])(?=\s|$)")


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


class ResponseParser:
    """Parses provider replies into :class:`ParsedContent`."""

    def parse(self, raw: Any, provider: ProviderTag | None = None) -> ParsedContent:
        """Parse a raw reply. Never raises.

        Args:
            raw: Reply text, a GenerationResult, or a vendor JSON envelope
            provider: Vendor that produced the reply, used to locate the text

        Returns:
            ParsedContent with non-empty title, body and summary
        """
        text = ""
        try:
            text = sanitize_text(self.extract_text(raw, provider))
            payload = self._strip_code_fence(text.strip())

            parsed = self._load_json_object(payload)
            if parsed is not None:
                content = self._from_json(parsed)
                if content is not None:
                    return content

            return self._from_text(text)
        except Exception as e:
            logger.warning(f"Falling back to raw text after parse failure: {e}")
            body = sanitize_text(text).strip() if isinstance(text, str) else ""
            return ParsedContent(
                title=DEFAULT_TITLE,
                body=body or DEFAULT_BODY,
                summary=_truncate(body, MAX_SUMMARY_LENGTH) if body else DEFAULT_TITLE,
            )

    def extract_text(self, raw: Any, provider: ProviderTag | None = None) -> str:
        """Find the generated text inside a reply. Unknown shapes yield ""."""
        if raw is None:
            return ""
        if isinstance(raw, str):
            return raw
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        if isinstance(raw, GenerationResult):
            return raw.content

        if isinstance(raw, Mapping):
            content = raw.get("content")
            if isinstance(content, str):
                return content

            if provider is not None and provider in PROVIDER_SPECS:
                return PROVIDER_SPECS[provider].extract_content(raw) or ""

            for spec in PROVIDER_SPECS.values():
                text = spec.extract_content(raw)
                if text:
                    return text

        logger.debug(f"No text found in reply of type {type(raw).__name__}")
        return ""

    def _strip_code_fence(self, text: str) -> str:
        match = _FENCED_BLOCK.match(text)
        return match.group(1).strip() if match else text

    def _load_json_object(self, text: str) -> dict[str, Any] | None:
        """Strict JSON parse, then the outermost {...} block inside prose."""
        candidates = [text]
        match = _JSON_OBJECT.search(text)
        if match and match.group(0) != text:
            candidates.append(match.group(0))

        for candidate in candidates:
            try:
                value = json.loads(candidate)
            except ValueError:
                continue
            if isinstance(value, dict):
                return value
        return None

    def _from_json(self, parsed: dict[str, Any]) -> ParsedContent | None:
        """Map a reply object onto ParsedContent, or None if it is not one."""
        if not any(key in parsed for key in ("title", "body", "description", "summary")):
            return None

        title = _clean(parsed.get("title"))
        body = _clean(parsed.get("body")) or _clean(parsed.get("description"))
        summary = _clean(parsed.get("summary"))

        if body is None:
            title = title or DEFAULT_TITLE
            return ParsedContent(title=title, body=DEFAULT_BODY, summary=summary or title)

        title = title or self._extract_title(body)
        summary = summary or self._derive_summary(body, title)
        return ParsedContent(title=title, body=body, summary=summary)

    def _from_text(self, text: str) -> ParsedContent:
        body = text.strip()
        if not body:
            return ParsedContent(title=DEFAULT_TITLE, body=DEFAULT_BODY, summary=DEFAULT_TITLE)

        title = self._extract_title(body)
        summary = self._extract_summary(body) or self._derive_summary(body, title)
        return ParsedContent(title=title, body=body, summary=summary)

    def _extract_title(self, text: str) -> str:
        """Title from a ``Title:`` line, else the first non-empty line."""
        match = _TITLE_LINE.search(text)
        if match and match.group(1).strip():
            return _truncate(match.group(1).strip(), MAX_TITLE_LENGTH)

        for line in text.splitlines():
            candidate = line.strip().lstrip("#").strip()
            if candidate:
                return _truncate(candidate, MAX_TITLE_LENGTH)
        return DEFAULT_TITLE

    def _extract_summary(self, text: str) -> str | None:
        for pattern in _SUMMARY_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1).strip():
                return _truncate(match.group(1).strip(), MAX_SUMMARY_LENGTH)
        return None

    def _derive_summary(self, body: str, title: str) -> str:
        """First sentence of the first meaningful paragraph, or the title."""
        plain = re.sub(r"```.*?```", "", body, flags=re.DOTALL)
        plain = re.sub(r"`[^`]+`", "", plain)
        plain = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", plain)
        plain = re.sub(r"[*_#]+", "", plain)

        for paragraph in re.split(r"\n\s*\n", plain):
            text = " ".join(paragraph.split())
            if not text or text == title or text.lower().startswith("title:"):
                continue

            match = _SENTENCE.match(text)
            sentence = match.group(1) if match else text
            return _truncate(sentence, MAX_SUMMARY_LENGTH)

        return title
