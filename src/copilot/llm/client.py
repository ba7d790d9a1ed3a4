"""
Upstate Home Copilot - LLM Client.

Wraps the OpenAI async client for plain chat completions.
All assistant calls go through here for consistency and prompt logging.
"""

import time

from openai import AsyncOpenAI

from copilot.config import settings
from copilot.llm.prompt_logger import PromptRecord, log_prompt

# Singleton client instance
_client: AsyncOpenAI | None = None


def get_client() -> AsyncOpenAI:
    """
    Get the OpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = AsyncOpenAI(api_key=settings.openai_api_key)

    return _client


async def call_llm_chat(
    *,
    messages: list[dict[str, str]],
    system_prompt: str,
    model: str | None = None,
    temperature: float | None = None,
    node: str = "assistant",
    context: dict[str, str] | None = None,
) -> str:
    """
    Make a chat completion call and return the reply text.

    Args:
        messages: Conversation so far as [{"role": ..., "content": ...}]
        system_prompt: System message setting context
        model: Model override (defaults to settings.openai_model)
        temperature: Sampling temperature (defaults to settings.assistant_temperature)
        node: Caller name, used for prompt logs
        context: Extra details for the prompt log, e.g. the question being phrased

    Raises whatever the OpenAI client raises; callers own the fallback.

    Example:
        reply = await call_llm_chat(
            messages=[{"role": "user", "content": "Hi"}],
            system_prompt="You are Upstate Home Copilot...",
        )
    """
    client = get_client()
    model = model or settings.openai_model
    if temperature is None:
        temperature = settings.assistant_temperature

    record = PromptRecord(
        node=node,
        model=model,
        system_prompt=system_prompt,
        messages=messages,
        temperature=temperature,
        context=context or {},
    )
    started = time.monotonic()

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "system", "content": system_prompt}, *messages],
            temperature=temperature,
        )
        record.reply = (response.choices[0].message.content or "").strip()
        return record.reply

    except Exception as e:
        record.error = str(e)
        raise

    finally:
        record.elapsed_ms = int((time.monotonic() - started) * 1000)
        log_prompt(record)
