from typing import List, Optional

import httpx

from curlbot.logging_config import get_logger
from curlbot.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")

USER_AGENT = "curlbot-whatsapp/1.0"


class OpenAIError(Exception):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"OpenAI API error: {status_code} - {body}")


class OpenAIProvider(LLMProvider):
    """OpenAI API provider."""

    def __init__(self, api_key: str, default_model: str = "gpt-4o", base_url: str = "https://api.openai.com/v1"):
        self.api_key = api_key
        self.default_model = default_model
        self.chat_url = f"{base_url}/chat/completions"
        self.audio_url = f"{base_url}/audio/transcriptions"
        self.embeddings_url = f"{base_url}/embeddings"

    def _headers(self, json_body: bool = True) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}", "User-Agent": USER_AGENT}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        tools: Optional[List[dict]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a chat completion. Tool definitions are offered with tool_choice=auto."""
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            payload["tools"] = [{"type": "function", "function": tool} for tool in tools]
            payload["tool_choice"] = "auto"

        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}, tools={bool(tools)}")

        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        with httpx.Client(timeout=timeout) as client:
            response = client.post(self.chat_url, headers=self._headers(), json=payload)

        if response.status_code != 200:
            logger.error(f"OpenAI error: {response.status_code} {response.text[:500]}")
            raise OpenAIError(response.status_code, response.text)

        data = response.json()
        content = ""
        tool_calls: List[dict] = []
        choices = data.get("choices") or []
        if choices:
            message = choices[0].get("message") or {}
            content = message.get("content") or ""
            tool_calls = message.get("tool_calls") or []
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}, tool_calls={len(tool_calls)}")

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
            tool_calls=tool_calls,
        )

    def transcribe_audio(
        self,
        *,
        audio_bytes: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Transcribe audio using OpenAI speech-to-text."""
        if not audio_bytes:
            raise ValueError("audio_bytes is empty")

        files = {"file": (filename or "audio", audio_bytes, mime_type or "application/octet-stream")}
        data = {"model": model or "whisper-1", "response_format": "text"}

        timeout = timeout_seconds if timeout_seconds is not None else 30.0
        with httpx.Client(timeout=timeout) as client:
            response = client.post(self.audio_url, headers=self._headers(json_body=False), files=files, data=data)

        logger.debug(f"OpenAI transcription status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"OpenAI transcription error: {response.text[:500]}")
            raise OpenAIError(response.status_code, response.text)

        transcript = (response.text or "").strip()
        if not transcript:
            logger.warning("OpenAI transcription returned empty text")
        return transcript

    def embed(self, inputs: List[str], model: Optional[str] = None) -> List[List[float]]:
        if not inputs:
            return []
        with httpx.Client(timeout=60.0) as client:
            response = client.post(
                self.embeddings_url,
                headers=self._headers(),
                json={"model": model or "text-embedding-ada-002", "input": inputs},
            )
        if response.status_code != 200:
            logger.error(f"OpenAI embeddings error: {response.text[:500]}")
            raise OpenAIError(response.status_code, response.text)
        return [item["embedding"] for item in response.json().get("data", [])]
