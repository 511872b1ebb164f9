from curlbot.services.llm.base import LLMProvider, LLMResponse
from curlbot.services.llm.openai_provider import OpenAIError, OpenAIProvider

__all__ = ["LLMProvider", "LLMResponse", "OpenAIError", "OpenAIProvider"]
