"""
Model clients for textact.

This module is the only place that *directly* calls an LLM.  Everything else (ReACT loop, tools,
sessions) stays model-agnostic and only relies on two operations:

- ``invoke(turns) -> str`` - full reply for a conversation.
- ``stream(turns) -> AsyncIterator[str]`` - the same reply as text fragments.

We support three back-ends out of the box:

1. **OpenAI-compatible** chat completions (OpenRouter by default, see ``OPENAI_BASE_URL``).
2. **Anthropic** messages API.
3. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models.

Additional providers can be added by subclassing :class:`BaseChatModel` and registering via
:func:`register_model`.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

import httpx

from textact.config import settings
from textact.core.schema import (
    ConversationTurn,
    Role,
)

logger = logging.getLogger(__name__)

_ROLE_NAMES = {Role.SYSTEM: "system", Role.HUMAN: "user", Role.AI: "assistant"}


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_MODEL_REGISTRY: dict[str, Type["BaseChatModel"]] = {}


def register_model(name: str) -> Callable:
    """Decorator to register a model client class under *name*."""

    def wrapper(cls: Type["BaseChatModel"]) -> Type["BaseChatModel"]:
        _MODEL_REGISTRY[name] = cls
        return cls

    return wrapper


def available_providers() -> List[str]:
    return sorted(_MODEL_REGISTRY)


def load_model(provider: str | None = None, model_name: str | None = None) -> "BaseChatModel":
    """
    Factory that returns an instantiated model client.

    Fallback order for the provider:
    1. *provider* arg
    2. ``settings.MODEL_PROVIDER`` env/.env option
    3. default: ``"openai"``
    """

    target = provider or getattr(settings, "MODEL_PROVIDER", "openai")
    cls = _MODEL_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Model provider '{target}' is not registered.")
    return cls(model_name=model_name)


def to_chat_messages(turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
    """Convert history turns to ``{"role", "content"}`` dicts."""
    return [{"role": _ROLE_NAMES[t.role], "content": t.content} for t in turns]


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseChatModel(ABC):
    """Abstract chat model: conversation turns in, text out."""

    provider: str = "base"
    default_model: str = ""

    def __init__(self, model_name: str | None = None, temperature: float | None = None):
        self.model_name = model_name or self.default_model
        self.temperature = settings.TEMPERATURE if temperature is None else temperature

    @abstractmethod
    async def invoke(self, turns: Sequence[ConversationTurn]) -> str:
        """Return the model's full reply to *turns*."""

    async def stream(self, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]:
        """Yield the reply as fragments; the default yields it in one piece."""
        yield await self.invoke(turns)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_name={self.model_name!r})"


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_model("openai")
class OpenAIChatModel(BaseChatModel):
    """OpenAI-compatible chat completions client (OpenRouter by default)."""

    provider = "openai"
    default_model = settings.OPENAI_MODEL

    def __init__(self, model_name: str | None = None, temperature: float | None = None):
        super().__init__(model_name, temperature)
        import openai  # pylint: disable=import-outside-toplevel

        self._client = openai.AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL
        )

    async def invoke(self, turns: Sequence[ConversationTurn]) -> str:
        resp = await self._client.chat.completions.create(
            model=self.model_name,
            messages=to_chat_messages(turns),  # type: ignore[arg-type]
            temperature=self.temperature,
        )
        content = resp.choices[0].message.content or ""
        logger.debug("OpenAI response: %s", content[:300])
        return content

    async def stream(self, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]:
        resp = await self._client.chat.completions.create(
            model=self.model_name,
            messages=to_chat_messages(turns),  # type: ignore[arg-type]
            temperature=self.temperature,
            stream=True,
        )
        async for chunk in resp:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content


@register_model("anthropic")
class AnthropicChatModel(BaseChatModel):
    """Anthropic Claude client; the system turn goes in the dedicated ``system`` field."""

    provider = "anthropic"
    default_model = settings.ANTHROPIC_MODEL

    def __init__(self, model_name: str | None = None, temperature: float | None = None):
        super().__init__(model_name, temperature)
        import anthropic  # pylint: disable=import-outside-toplevel

        self._client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

    def _request(self, turns: Sequence[ConversationTurn]) -> Dict[str, Any]:
        system = "\n\n".join(t.content for t in turns if t.role is Role.SYSTEM)
        request: Dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": settings.MAX_TOKENS,
            "messages": to_chat_messages([t for t in turns if t.role is not Role.SYSTEM]),
            "temperature": self.temperature,
        }
        if system:
            request["system"] = system
        return request

    async def invoke(self, turns: Sequence[ConversationTurn]) -> str:
        response = await self._client.messages.create(**self._request(turns))
        # Handle different content block types from Anthropic API
        content = "".join(block.text for block in response.content if block.type == "text")
        logger.debug("Anthropic response: %s", content[:300])
        return content

    async def stream(self, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]:
        async with self._client.messages.stream(**self._request(turns)) as stream:
            async for text in stream.text_stream:
                yield text


@register_model("tgi")
class TGIChatModel(BaseChatModel):
    """TGI-based client over httpx; the conversation is rendered as a plain transcript."""

    provider = "tgi"
    default_model = "tgi"

    _PREFIXES = {Role.SYSTEM: "", Role.HUMAN: "User: ", Role.AI: "Assistant: "}

    def _payload(self, turns: Sequence[ConversationTurn]) -> Dict[str, Any]:
        transcript = "\n\n".join(f"{self._PREFIXES[t.role]}{t.content}" for t in turns)
        return {
            "inputs": f"{transcript}\n\nAssistant: ",
            "parameters": {
                "max_new_tokens": settings.MAX_TOKENS,
                "temperature": max(self.temperature, 0.01),
                "stop": ["User:", "Observation:", "</s>"],
            },
        }

    async def invoke(self, turns: Sequence[ConversationTurn]) -> str:
        endpoint = f"{settings.TGI_ENDPOINT.rstrip('/')}/generate"
        async with httpx.AsyncClient(timeout=120.0) as client:
            resp = await client.post(endpoint, json=self._payload(turns))
            resp.raise_for_status()
            content = resp.json()["generated_text"]
        logger.debug("TGI response: %s", content[:300])
        return content

    async def stream(self, turns: Sequence[ConversationTurn]) -> AsyncIterator[str]:
        endpoint = f"{settings.TGI_ENDPOINT.rstrip('/')}/generate_stream"
        async with httpx.AsyncClient(timeout=120.0) as client:
            async with client.stream("POST", endpoint, json=self._payload(turns)) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    event = json.loads(line[len("data:") :])
                    token = event.get("token") or {}
                    if token.get("text") and not token.get("special"):
                        yield token["text"]
