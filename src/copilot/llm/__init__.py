"""
Upstate Home Copilot - LLM Client.

Provides chat completions for assistant phrasing.
"""

from copilot.llm.client import call_llm_chat, get_client

__all__ = [
    "get_client",
    "call_llm_chat",
]
