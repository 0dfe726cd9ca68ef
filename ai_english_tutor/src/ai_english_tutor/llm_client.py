"""
DeepSeek chat-completion client

Thin wrapper over the OpenAI-compatible DeepSeek endpoint. Every task in the
tutor (lesson generation, recommendations, chat, writing analysis) goes
through `complete()` with its own system prompt.
"""

import logging
import time
from typing import Dict, List, Optional, Union

from openai import AsyncOpenAI, OpenAIError

from ai_english_tutor.config import DEFAULT_DEEPSEEK_BASE_URL, DEFAULT_DEEPSEEK_MODEL
from ai_english_tutor.exceptions import ConfigurationError, LLMError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class LLMClient:
    """Single-operation chat-completion client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_DEEPSEEK_BASE_URL,
        model: str = DEFAULT_DEEPSEEK_MODEL,
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None
    ):
        """
        Initialize LLMClient.

        Args:
            api_key: DeepSeek API key (calls fail with ConfigurationError if missing)
            base_url: OpenAI-compatible endpoint root
            model: Chat model name
            timeout: Per-request timeout in seconds
            client: Pre-built AsyncOpenAI client (optional, for tests)
        """
        self.api_key = api_key
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

        if not self.configured:
            logger.warning("⚠️ [LLMClient] DEEPSEEK_API_KEY missing - AI features will use placeholders")

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        system_prompt: str,
        conversation: Union[str, List[Message]],
        temperature: Optional[float] = None
    ) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: Task-specific system message
            conversation: A single user prompt or a role/content message list
            temperature: Sampling temperature (provider default if None)

        Returns:
            The assistant message text

        Raises:
            ConfigurationError: If no API key is configured
            LLMError: On transport errors or an unexpected response shape
        """
        if not self.configured:
            raise ConfigurationError("Missing API Key")

        if isinstance(conversation, str):
            history = [{"role": "user", "content": conversation}]
        else:
            history = list(conversation)
        messages = [{"role": "system", "content": system_prompt}] + history

        kwargs = {"model": self.model, "messages": messages}
        if temperature is not None:
            kwargs["temperature"] = temperature

        start_time = time.time()
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            elapsed = time.time() - start_time
            logger.error(f"❌ [LLMClient] Request failed after {elapsed:.2f}s: {e}")
            raise LLMError(f"API Error: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise LLMError("Unexpected chat completion response") from e
        if content is None:
            raise LLMError("Empty chat completion response")

        logger.debug(f"🤖 [LLMClient] Completed in {time.time() - start_time:.2f}s ({len(content)} chars)")
        return content
