"""
Gemini AI Service for ThreadBot

Uses the google.genai SDK for:
- Free-text replies (general chat, confirmations, questions)
- JSON answers validated against pydantic shapes (classification,
  summaries, strategy judgments)

The SDK client is synchronous, so calls run in a worker thread.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Type, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError as PydanticValidationError

from threadbot.config.settings import Settings, get_settings
from threadbot.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    MalformedResponseError,
    RateLimitError,
)


logger = logging.getLogger(__name__)

ShapeT = TypeVar("ShapeT", bound=BaseModel)


class GeminiService:
    """
    Gemini-backed text generator.

    Args:
        settings: Application settings (API key, model, sampling)
        client: Pre-built genai client, mainly for tests
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[genai.Client] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client
        self.model = self._settings.gemini_model

    @property
    def client(self) -> genai.Client:
        """Get the Gemini client instance, creating it on first use."""
        if self._client is None:
            api_key = self._settings.google_api_key
            if not api_key:
                raise ConfigurationError(
                    "Missing GOOGLE_API_KEY environment variable",
                    missing_keys=["GOOGLE_API_KEY"]
                )
            self._client = genai.Client(api_key=api_key)
            logger.info(f"GeminiService initialized with model: {self.model}")
        return self._client

    async def generate_content(
        self,
        prompt: str,
        response_schema: Optional[Type[BaseModel]] = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        """
        Generate text for a prompt.

        When ``response_schema`` is given the model is asked for JSON only
        and the schema is appended to the prompt.

        Raises:
            RateLimitError: Quota or rate limit hit
            AIServiceError: Any other backend failure or an empty answer
        """
        contents = prompt
        config_kwargs: Dict[str, Any] = {
            "temperature": self._settings.gemini_temperature,
            "max_output_tokens": self._settings.gemini_max_output_tokens,
        }
        if system_instruction:
            config_kwargs["system_instruction"] = system_instruction
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            schema = json.dumps(response_schema.model_json_schema())
            contents = f"{prompt}\n\nRespond with a single JSON object matching this JSON schema:\n{schema}"

        try:
            response = await asyncio.to_thread(
                lambda: self.client.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=types.GenerateContentConfig(**config_kwargs),
                )
            )
        except ConfigurationError:
            raise
        except Exception as e:
            error_msg = str(e).lower()

            if "rate" in error_msg or "quota" in error_msg or "429" in error_msg:
                raise RateLimitError(
                    "Gemini API rate limit exceeded",
                    original_error=e
                )

            raise AIServiceError(
                f"Failed to generate content: {str(e)}",
                model=self.model,
                operation="generate_content",
                original_error=e
            )

        text = response.text if response is not None else None
        if not text:
            raise AIServiceError(
                "Gemini returned no content",
                model=self.model,
                operation="generate_content",
            )
        return text

    async def generate_structured(self, prompt: str, shape: Type[ShapeT]) -> ShapeT:
        """
        Generate a JSON answer and validate it into ``shape``.

        Raises:
            MalformedResponseError: The answer is not JSON for ``shape``
        """
        text = await self.generate_content(prompt, response_schema=shape)
        data = self._parse_json_response(text)
        try:
            return shape.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                f"Response does not match {shape.__name__}",
                model=self.model,
                operation="generate_structured",
                original_error=e,
            )

    def _parse_json_response(self, response_text: str) -> Dict[str, Any]:
        """Parse JSON from response, handling markdown code blocks."""
        text = response_text.strip()

        # Remove markdown code blocks
        if text.startswith("```json"):
            text = text[7:]
        elif text.startswith("```"):
            text = text[3:]

        if text.endswith("```"):
            text = text[:-3]

        text = text.strip()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Response was not valid JSON")
            raise MalformedResponseError(
                "Response was not valid JSON",
                model=self.model,
                operation="parse_json",
                original_error=e,
            )
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Expected a JSON object",
                model=self.model,
                operation="parse_json",
            )
        return data
