"""
Unified text-generation client for the content tools.

Cerebras exposes an OpenAI-compatible endpoint, so it is driven through the
``openai`` SDK with a custom base URL. OpenAI and Anthropic are optional
fallbacks, used only when ``ALLOW_PROVIDER_FALLBACK`` is enabled.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import anthropic
import openai

from .models import ConversationMessage, LLMProvider, MessageRole
from .config import get_settings

logger = logging.getLogger(__name__)


class LLMClientError(Exception):
    """Raised when no provider could produce a response."""


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    default_model: str

    @abstractmethod
    async def generate_response(
        self,
        messages: List[ConversationMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: Optional[str] = None,
    ) -> str:
        """Generate a response from the LLM."""


class OpenAICompatibleClient(LLMClient):
    """Chat completions client for any OpenAI-compatible API."""

    def __init__(self, api_key: str, default_model: str, base_url: Optional[str] = None):
        client_kwargs = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = openai.AsyncOpenAI(**client_kwargs)
        self.default_model = default_model

    async def generate_response(
        self,
        messages: List[ConversationMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: Optional[str] = None,
    ) -> str:
        response = await self.client.chat.completions.create(
            model=model or self.default_model,
            messages=[{"role": msg.role.value, "content": msg.content} for msg in messages],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.choices[0].message.content or ""


class CerebrasClient(OpenAICompatibleClient):
    """Cerebras inference via its OpenAI-compatible endpoint."""

    def __init__(self, api_key: str, base_url: str, default_model: str):
        super().__init__(api_key, default_model, base_url=base_url)
        logger.info(f"[LLM] Cerebras client initialized (base_url: {base_url})")


class OpenAIClient(OpenAICompatibleClient):
    """OpenAI API client."""

    def __init__(self, api_key: str, default_model: str):
        super().__init__(api_key, default_model)
        logger.info(f"[LLM] OpenAI client initialized (model: {default_model})")


class AnthropicClient(LLMClient):
    """Anthropic API client."""

    def __init__(self, api_key: str, default_model: str):
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.default_model = default_model
        logger.info(f"[LLM] Anthropic client initialized (model: {default_model})")

    async def generate_response(
        self,
        messages: List[ConversationMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: Optional[str] = None,
    ) -> str:
        # Anthropic takes the system prompt separately
        system_message = ""
        conversation = []
        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_message = msg.content
            else:
                conversation.append({"role": msg.role.value, "content": msg.content})

        kwargs = {
            "model": model or self.default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation,
        }
        if system_message:
            kwargs["system"] = system_message

        response = await self.client.messages.create(**kwargs)
        return "".join(block.text for block in response.content if getattr(block, "type", None) == "text")


class UnifiedLLMClient:
    """Routes text generation to the configured providers."""

    # Order tried when falling back
    FALLBACK_ORDER = (LLMProvider.CEREBRAS, LLMProvider.OPENAI, LLMProvider.ANTHROPIC)

    def __init__(self):
        self.settings = get_settings()
        self.clients: dict = {}
        self._initialize_clients()

    def _initialize_clients(self):
        if self.settings.cerebras_api_key:
            self.clients[LLMProvider.CEREBRAS] = CerebrasClient(
                self.settings.cerebras_api_key,
                self.settings.cerebras_base_url,
                self.settings.lesson_model,
            )
        if self.settings.openai_api_key:
            self.clients[LLMProvider.OPENAI] = OpenAIClient(
                self.settings.openai_api_key, self.settings.openai_model
            )
        if self.settings.anthropic_api_key:
            self.clients[LLMProvider.ANTHROPIC] = AnthropicClient(
                self.settings.anthropic_api_key, self.settings.anthropic_fallback_model
            )
        logger.info(f"[LLM] Available providers: {[p.value for p in self.clients]}")

    async def generate_response(
        self,
        messages: List[ConversationMessage],
        preferred_provider: Optional[LLMProvider] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: Optional[str] = None,
        allow_fallback: Optional[bool] = None,
    ) -> Tuple[str, LLMProvider]:
        """
        Generate a response, optionally falling back to other providers.

        ``model`` is only passed to the preferred provider; fallback providers
        run their own default model.

        Returns:
            Tuple of (response_text, provider_used)
        """
        if allow_fallback is None:
            allow_fallback = self.settings.allow_provider_fallback
        preferred = preferred_provider or LLMProvider.CEREBRAS

        if not allow_fallback:
            if preferred not in self.clients:
                raise LLMClientError(
                    f"Provider '{preferred.value}' is not configured and fallback is disabled"
                )
            client = self.clients[preferred]
            return await client.generate_response(messages, max_tokens, temperature, model), preferred

        providers_to_try = [preferred] if preferred in self.clients else []
        providers_to_try += [p for p in self.FALLBACK_ORDER if p in self.clients and p != preferred]
        if not providers_to_try:
            raise LLMClientError("No LLM providers configured")

        last_error: Optional[Exception] = None
        for provider in providers_to_try:
            try:
                logger.info(f"[LLM] Trying provider: {provider.value}")
                provider_model = model if provider == preferred else None
                response = await self.clients[provider].generate_response(
                    messages, max_tokens, temperature, provider_model
                )
                return response, provider
            except Exception as e:
                logger.warning(f"[LLM] Provider {provider.value} failed: {e}")
                last_error = e

        raise LLMClientError(f"All LLM providers failed. Last error: {last_error}") from last_error

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Single-prompt generation, preferring Cerebras."""
        text, _provider = await self.generate_response(
            messages=[ConversationMessage(role=MessageRole.USER, content=prompt)],
            preferred_provider=LLMProvider.CEREBRAS,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return text

    def get_available_providers(self) -> List[LLMProvider]:
        """Get list of available providers."""
        return list(self.clients.keys())


# Global client instance
_llm_client: Optional[UnifiedLLMClient] = None


def get_llm_client() -> UnifiedLLMClient:
    """Get the global LLM client instance."""
    global _llm_client
    if _llm_client is None:
        _llm_client = UnifiedLLMClient()
    return _llm_client
