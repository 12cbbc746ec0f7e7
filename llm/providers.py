"""
LLM Providers

Thin adapters that give every backend the same stateless capability:
generate(system_prompt, messages) -> str. Messages use the chat format
[{"role": "user" | "assistant", "content": str}].
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import anthropic
import openai
from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    async def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """Return the model's reply text."""
        pass


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions (also any OpenAI-compatible endpoint)."""

    def __init__(
        self,
        model_name: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None,
        temperature: float = 0.7,
    ):
        super().__init__(model_name)
        self.client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.temperature = temperature

    async def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=[{"role": "system", "content": system_prompt}] + list(messages),
            temperature=self.temperature,
        )
        return response.choices[0].message.content or ""


class AnthropicProvider(LLMProvider):
    """Anthropic messages API; the blocking client runs in a worker thread."""

    def __init__(
        self,
        model_name: str,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = 0.1,
    ):
        super().__init__(model_name)
        self.client = client or anthropic.Anthropic(api_key=api_key)
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        response = await asyncio.to_thread(
            self.client.messages.create,
            model=self.model_name,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=[m for m in messages if m["role"] in ("user", "assistant")],
            temperature=self.temperature,
        )
        return "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")


class GeminiProvider(LLMProvider):
    """Gemini through a per-provider google-genai client."""

    def __init__(
        self,
        model_name: str = "gemini-2.5-pro",
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        super().__init__(model_name)
        # Async surface of the client; the key stays on this instance
        self.client = client or genai.Client(api_key=api_key).aio

    async def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        # Gemini calls the assistant role "model"
        contents = [
            types.Content(
                role="model" if m["role"] == "assistant" else "user",
                parts=[types.Part(text=m["content"])],
            )
            for m in messages
        ]
        response = await self.client.models.generate_content(
            model=self.model_name,
            contents=contents,
            config=types.GenerateContentConfig(system_instruction=system_prompt),
        )
        return response.text or ""
