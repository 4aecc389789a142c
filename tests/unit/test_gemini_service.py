"""
Unit tests for GeminiService.

The genai client is replaced by a MagicMock; no network calls are made.
"""

from unittest.mock import MagicMock

import pytest

from threadbot.config.settings import Settings
from threadbot.infrastructure.ai.gemini_service import GeminiService
from threadbot.infrastructure.ai.schemas import ThreadSummary
from threadbot.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    MalformedResponseError,
    RateLimitError,
)


@pytest.fixture
def test_settings():
    return Settings(google_api_key="test-key", _env_file=None)


def _service(test_settings, text=None, error=None):
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = MagicMock(text=text)
    return GeminiService(settings=test_settings, client=client), client


class TestGenerateContent:
    """Tests for raw text generation."""

    @pytest.mark.asyncio
    async def test_returns_text(self, test_settings):
        service, client = _service(test_settings, text="Hello!")

        assert await service.generate_content("Say hi") == "Hello!"
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == test_settings.gemini_model
        assert kwargs["contents"] == "Say hi"

    @pytest.mark.asyncio
    async def test_schema_requests_json(self, test_settings):
        service, client = _service(test_settings, text="{}")

        await service.generate_content("Summarize", response_schema=ThreadSummary)

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["config"].response_mime_type == "application/json"
        assert "JSON schema" in kwargs["contents"]

    @pytest.mark.asyncio
    async def test_empty_answer_is_error(self, test_settings):
        service, _ = _service(test_settings, text="")

        with pytest.raises(AIServiceError):
            await service.generate_content("Say hi")

    @pytest.mark.asyncio
    async def test_quota_errors_become_rate_limit(self, test_settings):
        service, _ = _service(test_settings, error=RuntimeError("429 RESOURCE_EXHAUSTED quota"))

        with pytest.raises(RateLimitError):
            await service.generate_content("Say hi")

    @pytest.mark.asyncio
    async def test_other_errors_become_ai_service_error(self, test_settings):
        service, _ = _service(test_settings, error=RuntimeError("connection reset"))

        with pytest.raises(AIServiceError) as exc_info:
            await service.generate_content("Say hi")
        assert not isinstance(exc_info.value, RateLimitError)

    def test_missing_key_is_configuration_error(self):
        service = GeminiService(settings=Settings(_env_file=None, google_api_key=None, gemini_api_key=None))

        with pytest.raises(ConfigurationError):
            service.client


class TestGenerateStructured:
    """Tests for JSON parsing and validation."""

    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, test_settings):
        service, _ = _service(test_settings, text='```json\n{"theme": "Cats", "summary": "About cats"}\n```')

        result = await service.generate_structured("Summarize", ThreadSummary)

        assert result == ThreadSummary(theme="Cats", summary="About cats")

    @pytest.mark.asyncio
    async def test_invalid_json_is_malformed(self, test_settings):
        service, _ = _service(test_settings, text="not json at all")

        with pytest.raises(MalformedResponseError):
            await service.generate_structured("Summarize", ThreadSummary)

    @pytest.mark.asyncio
    async def test_non_object_is_malformed(self, test_settings):
        service, _ = _service(test_settings, text="[1, 2]")

        with pytest.raises(MalformedResponseError):
            await service.generate_structured("Summarize", ThreadSummary)

    @pytest.mark.asyncio
    async def test_missing_field_is_malformed(self, test_settings):
        service, _ = _service(test_settings, text='{"summary": "no theme"}')

        with pytest.raises(MalformedResponseError):
            await service.generate_structured("Summarize", ThreadSummary)
