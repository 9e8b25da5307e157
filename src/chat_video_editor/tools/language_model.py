"""Language-model connector used by the command interpreter and response composer."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import Settings
from ..exceptions import (
    AuthError, QuotaError, LanguageModelTimeout, LanguageModelUnavailable, LanguageModelError
)


logger = logging.getLogger(__name__)


class LanguageModelConnector(ABC):
    """Capability object wrapping a text-completion model.

    Implementations are constructed once at start-up and passed to the
    components that need them.
    """

    @abstractmethod
    async def complete(self, prompt: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Complete a prompt and return the raw reply text.

        Args:
            prompt: User-facing prompt
            context: Optional call options: ``system`` (system instruction),
                ``temperature``, ``max_output_tokens``, ``json`` (ask for JSON)

        Raises:
            AuthError: Credentials missing or rejected
            QuotaError: Rate limit or quota exceeded
            LanguageModelTimeout: Call exceeded the configured timeout
            LanguageModelUnavailable: Any other failure
        """
        pass


AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
QUOTA_STATUSES = {"RESOURCE_EXHAUSTED"}


def map_api_error(error: genai_errors.APIError) -> LanguageModelError:
    """Translate a google-genai API error into the connector taxonomy."""
    code = getattr(error, "code", None)
    status = str(getattr(error, "status", "") or "").upper()
    message = getattr(error, "message", None) or str(error)

    if code in (401, 403) or status in AUTH_STATUSES:
        return AuthError(f"Gemini rejected credentials: {message}")
    if code == 429 or status in QUOTA_STATUSES:
        return QuotaError(f"Gemini quota exceeded: {message}")
    if code == 400 and "api key" in message.lower():
        return AuthError(f"Gemini rejected credentials: {message}")
    return LanguageModelUnavailable(f"Gemini request failed ({code}): {message}")


class GeminiConnector(LanguageModelConnector):
    """Gemini text completions through the google-genai SDK."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "gemini-2.0-flash",
        timeout: float = 30.0,
        use_vertexai: bool = False,
        project: Optional[str] = None,
        location: str = "us-central1"
    ):
        """Initialize the connector.

        A connector without credentials is still usable: every call raises
        AuthError, which puts callers into their degraded mode.
        """
        self._model_name = model_name
        self.timeout = timeout
        self._client = None

        if use_vertexai and project:
            self._client = genai.Client(vertexai=True, project=project, location=location)
            self._api_type = "vertex"
        elif api_key:
            self._client = genai.Client(api_key=api_key)
            self._api_type = "genai"
        else:
            self._api_type = "unconfigured"
            logger.warning("No Gemini credentials configured; language model calls will fail over to fallback mode")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiConnector":
        return cls(
            api_key=settings.gemini_api_key,
            model_name=settings.get_gemini_model_name(),
            timeout=settings.llm_timeout,
            use_vertexai=settings.google_genai_use_vertexai,
            project=settings.google_cloud_project,
            location=settings.google_cloud_location,
        )

    def _build_config(self, context: Dict[str, Any]) -> types.GenerateContentConfig:
        options: Dict[str, Any] = {}
        if context.get("system"):
            options["system_instruction"] = context["system"]
        if context.get("temperature") is not None:
            options["temperature"] = context["temperature"]
        if context.get("max_output_tokens"):
            options["max_output_tokens"] = context["max_output_tokens"]
        if context.get("json"):
            options["response_mime_type"] = "application/json"
        return types.GenerateContentConfig(**options)

    async def complete(self, prompt: str, context: Optional[Dict[str, Any]] = None) -> str:
        if self._client is None:
            raise AuthError("Gemini API key not configured")

        config = self._build_config(context or {})

        try:
            response = await asyncio.wait_for(
                asyncio.get_event_loop().run_in_executor(
                    None,
                    lambda: self._client.models.generate_content(
                        model=self._model_name,
                        contents=prompt,
                        config=config
                    )
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Gemini call timed out after {self.timeout}s")
            raise LanguageModelTimeout(f"Language model did not answer within {self.timeout}s")
        except genai_errors.APIError as e:
            mapped = map_api_error(e)
            logger.error(f"Gemini API call failed: {mapped}")
            raise mapped from e
        except Exception as e:
            logger.error(f"Gemini API call failed: {e}")
            raise LanguageModelUnavailable(f"Language model unreachable: {e}") from e

        return response.text or ""
