from unittest.mock import MagicMock, Mock, patch

import pytest

from curlbot.services.llm import OpenAIError, OpenAIProvider


def _client_returning(mock_client_class, status_code=200, json_data=None, text=""):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.json.return_value = json_data or {}
    mock_response.text = text
    mock_client.post.return_value = mock_response
    return mock_client


class TestGenerate:
    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_returns_content(self, mock_client_class):
        _client_returning(
            mock_client_class,
            json_data={"choices": [{"message": {"content": "Hola!"}}], "model": "gpt-4o", "usage": {"total_tokens": 5}},
        )
        provider = OpenAIProvider(api_key="test-key")

        response = provider.generate([{"role": "user", "content": "hi"}])

        assert response.content == "Hola!"
        assert response.model == "gpt-4o"
        assert response.tool_calls == []

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_wraps_tools_as_functions(self, mock_client_class):
        mock_client = _client_returning(mock_client_class, json_data={"choices": [{"message": {"content": "ok"}}]})
        tool = {"name": "get_booksy_services", "parameters": {"type": "object", "properties": {}}}

        OpenAIProvider(api_key="test-key").generate([{"role": "user", "content": "hi"}], tools=[tool])

        payload = mock_client.post.call_args[1]["json"]
        assert payload["tools"] == [{"type": "function", "function": tool}]
        assert payload["tool_choice"] == "auto"

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_no_tools_key_without_tools(self, mock_client_class):
        mock_client = _client_returning(mock_client_class, json_data={"choices": [{"message": {"content": "ok"}}]})

        OpenAIProvider(api_key="test-key").generate([{"role": "user", "content": "hi"}])

        assert "tools" not in mock_client.post.call_args[1]["json"]

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_returns_tool_calls(self, mock_client_class):
        tool_call = {"id": "call_1", "type": "function", "function": {"name": "get_booksy_services", "arguments": "{}"}}
        _client_returning(
            mock_client_class, json_data={"choices": [{"message": {"content": None, "tool_calls": [tool_call]}}]}
        )

        response = OpenAIProvider(api_key="test-key").generate([{"role": "user", "content": "prices?"}])

        assert response.content == ""
        assert response.tool_calls == [tool_call]
        assert response.as_message() == {"role": "assistant", "content": None, "tool_calls": [tool_call]}

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_raises_on_api_error(self, mock_client_class):
        _client_returning(mock_client_class, status_code=429, text="rate limited")

        with pytest.raises(OpenAIError) as exc_info:
            OpenAIProvider(api_key="test-key").generate([{"role": "user", "content": "hi"}])
        assert exc_info.value.status_code == 429


class TestTranscribeAudio:
    def test_rejects_empty_audio(self):
        with pytest.raises(ValueError):
            OpenAIProvider(api_key="test-key").transcribe_audio(audio_bytes=b"", filename="audio.ogg")

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_returns_stripped_text(self, mock_client_class):
        mock_client = _client_returning(mock_client_class, text="  my curls are dry \n")

        transcript = OpenAIProvider(api_key="test-key").transcribe_audio(
            audio_bytes=b"ogg", filename="audio.ogg", mime_type="audio/ogg"
        )

        assert transcript == "my curls are dry"
        assert mock_client.post.call_args[1]["data"]["model"] == "whisper-1"


class TestEmbed:
    def test_empty_inputs(self):
        assert OpenAIProvider(api_key="test-key").embed([]) == []

    @patch("curlbot.services.llm.openai_provider.httpx.Client")
    def test_returns_vectors(self, mock_client_class):
        _client_returning(mock_client_class, json_data={"data": [{"embedding": [0.1, 0.2]}, {"embedding": [0.3]}]})

        assert OpenAIProvider(api_key="test-key").embed(["a", "b"]) == [[0.1, 0.2], [0.3]]
