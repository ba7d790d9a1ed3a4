"""
Upstate Home Copilot - Property Store.

Provides the store contract and its Supabase and in-memory implementations.
"""

from copilot.db.adapter import PropertyStore, StoreError, Subscription
from copilot.db.memory import InMemoryPropertyStore
from copilot.db.request_context import SessionContext, get_session_context, set_session_context

__all__ = [
    "PropertyStore",
    "StoreError",
    "Subscription",
    "InMemoryPropertyStore",
    "SessionContext",
    "get_session_context",
    "set_session_context",
]
