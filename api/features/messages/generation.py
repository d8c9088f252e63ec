"""Generation backends that turn conversation context into bot text."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

import structlog
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, RateLimitError

from api.features.messages.entities.message import Message, MessageStatus, SenderType
from api.shared.exceptions import UpstreamGenerationError

logger = logging.getLogger("chat.messages.generation")
chain_logger = structlog.get_logger("chat.chain")

SYSTEM_PROMPT = "You are a helpful assistant. Answer the latest user message."


@dataclass
class GenerationContext:
    """Everything a backend needs to produce the next bot reply."""

    history: List[Dict[str, str]]
    model_name: str
    attachment_count: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_messages(
        cls, messages: List[Message], model_name: str, attachment_count: int = 0
    ) -> "GenerationContext":
        history = [
            {
                "role": "user" if m.sender == SenderType.USER else "assistant",
                "content": m.content,
            }
            for m in messages
            if m.content
        ]
        return cls(history=history, model_name=model_name, attachment_count=attachment_count)


class GenerationBackend(Protocol):
    async def generate(self, context: GenerationContext) -> str:
        """Return reply text or raise UpstreamGenerationError."""
        ...


class OpenAIGenerationBackend:
    """Chat completions through the OpenAI API."""

    def __init__(self, api_key: str, default_model: str, timeout: float = 60.0):
        self.client = AsyncOpenAI(api_key=api_key)
        self.default_model = default_model
        self.timeout = timeout

    async def generate(self, context: GenerationContext) -> str:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        if context.attachment_count:
            messages.append(
                {
                    "role": "system",
                    "content": f"The user attached {context.attachment_count} file(s).",
                }
            )
        messages.extend(context.history)
        model = context.model_name or self.default_model
        try:
            resp = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                timeout=self.timeout,
            )
        except (RateLimitError, APIConnectionError, APIStatusError) as e:
            logger.warning(f"OpenAI request failed for model {model}: {e}")
            raise UpstreamGenerationError("openai", str(e), {"model": model}) from e
        content = resp.choices[0].message.content or ""
        return content.strip()


class PlaceholderGenerationBackend:
    """Deterministic backend used when no API key is configured."""

    async def generate(self, context: GenerationContext) -> str:
        last_user = next(
            (h["content"] for h in reversed(context.history) if h["role"] == "user"),
            "",
        )
        return f"[{context.model_name}] {last_user}"


async def produce_reply(
    backend: GenerationBackend, context: GenerationContext, **log_fields: Any
) -> Tuple[str, MessageStatus]:
    """Run the backend; a failure becomes an empty reply with status failed."""
    try:
        content = await backend.generate(context)
    except UpstreamGenerationError as e:
        chain_logger.warning(
            "generation_failed", model=context.model_name, error=e.message, **log_fields
        )
        return "", MessageStatus.FAILED
    return content, MessageStatus.COMPLETED


def build_generation_backend(openai_settings) -> GenerationBackend:
    """OpenAI when enabled and keyed, otherwise the placeholder backend."""
    api_key = openai_settings.OPENAI_API_KEY.get_secret_value()
    if openai_settings.USE_OPENAI and api_key:
        return OpenAIGenerationBackend(
            api_key=api_key,
            default_model=openai_settings.OPENAI_MODEL,
            timeout=openai_settings.OPENAI_TIMEOUT,
        )
    logger.warning("OpenAI disabled or no API key configured; using placeholder replies")
    return PlaceholderGenerationBackend()
