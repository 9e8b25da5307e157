"""Tests for the Gemini connector."""

import time

import pytest
from unittest.mock import MagicMock, patch
from google.genai import errors as genai_errors

from chat_video_editor.exceptions import (
    AuthError, QuotaError, LanguageModelTimeout, LanguageModelUnavailable
)
from chat_video_editor.tools.language_model import GeminiConnector, map_api_error


def api_error(code, status, message="boom"):
    error_cls = genai_errors.ClientError if code < 500 else genai_errors.ServerError
    return error_cls(code, {"error": {"code": code, "message": message, "status": status}})


class TestMapApiError:

    @pytest.mark.parametrize("code,status,expected", [
        (401, "UNAUTHENTICATED", AuthError),
        (403, "PERMISSION_DENIED", AuthError),
        (429, "RESOURCE_EXHAUSTED", QuotaError),
        (500, "INTERNAL", LanguageModelUnavailable),
        (503, "UNAVAILABLE", LanguageModelUnavailable),
    ])
    def test_status_mapping(self, code, status, expected):
        assert isinstance(map_api_error(api_error(code, status)), expected)

    def test_invalid_key_reported_as_400(self):
        error = api_error(400, "INVALID_ARGUMENT", "API key not valid. Please pass a valid API key.")
        assert isinstance(map_api_error(error), AuthError)

    def test_other_bad_request(self):
        error = api_error(400, "INVALID_ARGUMENT", "Request contains an invalid argument.")
        assert isinstance(map_api_error(error), LanguageModelUnavailable)


class TestGeminiConnector:
    """Test completions with the SDK client mocked out."""

    @pytest.mark.asyncio
    async def test_without_credentials(self):
        connector = GeminiConnector(api_key=None)
        with pytest.raises(AuthError):
            await connector.complete("hello")

    @pytest.mark.asyncio
    @patch('chat_video_editor.tools.language_model.genai.Client')
    async def test_complete(self, mock_client_cls):
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(text='{"action": "trim"}')
        mock_client_cls.return_value = client

        connector = GeminiConnector(api_key="test-key", model_name="gemini-test")
        reply = await connector.complete("trim it", {
            "system": "You are an editor", "temperature": 0.2, "max_output_tokens": 50, "json": True
        })

        assert reply == '{"action": "trim"}'
        mock_client_cls.assert_called_once_with(api_key="test-key")
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "trim it"
        assert kwargs["config"].system_instruction == "You are an editor"
        assert kwargs["config"].temperature == 0.2
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    @patch('chat_video_editor.tools.language_model.genai.Client')
    async def test_empty_text(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.return_value = MagicMock(text=None)
        connector = GeminiConnector(api_key="test-key")
        assert await connector.complete("hi") == ""

    @patch('chat_video_editor.tools.language_model.genai.Client')
    def test_vertex_client(self, mock_client_cls):
        GeminiConnector(use_vertexai=True, project="my-project", location="europe-west4")
        mock_client_cls.assert_called_once_with(vertexai=True, project="my-project", location="europe-west4")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,expected", [
        (api_error(429, "RESOURCE_EXHAUSTED"), QuotaError),
        (api_error(401, "UNAUTHENTICATED"), AuthError),
        (api_error(503, "UNAVAILABLE"), LanguageModelUnavailable),
        (ConnectionError("connection reset"), LanguageModelUnavailable),
    ])
    @patch('chat_video_editor.tools.language_model.genai.Client')
    async def test_errors_mapped(self, mock_client_cls, error, expected):
        mock_client_cls.return_value.models.generate_content.side_effect = error
        connector = GeminiConnector(api_key="test-key")
        with pytest.raises(expected):
            await connector.complete("hi")

    @pytest.mark.asyncio
    @patch('chat_video_editor.tools.language_model.genai.Client')
    async def test_timeout(self, mock_client_cls):
        def slow(**kwargs):
            time.sleep(0.3)
            return MagicMock(text="late")

        mock_client_cls.return_value.models.generate_content.side_effect = slow
        connector = GeminiConnector(api_key="test-key", timeout=0.05)
        with pytest.raises(LanguageModelTimeout):
            await connector.complete("hi")

    def test_from_settings(self, test_settings):
        connector = GeminiConnector.from_settings(test_settings)
        assert connector.timeout == test_settings.llm_timeout
        assert connector._client is None
