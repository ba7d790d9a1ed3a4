"""
Upstate Home Copilot - Session Context.

Carries the active user id and, once it exists, the active property
record id. Uses a context variable so the CLI (or a request handler) can
set it once and the dialogue picks it up without threading it through
every call.
"""

from contextvars import ContextVar
from dataclasses import dataclass


@dataclass
class SessionContext:
    """
    Who is onboarding, and which record they are building.

    Both ids start out unknown. Nothing is persisted until user_id is set;
    record_id is filled in by the dialogue when the record is created.
    """

    user_id: str | None = None
    record_id: str | None = None

    @property
    def can_persist(self) -> bool:
        return self.user_id is not None


_session: ContextVar[SessionContext | None] = ContextVar("session", default=None)


def set_session_context(user_id: str | None = None, record_id: str | None = None) -> SessionContext:
    """
    Set the session context for the current task.

    Call this at the start of an onboarding session.
    """
    session = SessionContext(user_id=user_id, record_id=record_id)
    _session.set(session)
    return session


def get_session_context() -> SessionContext:
    """Get the current session context, creating an empty one if unset."""
    session = _session.get()
    if session is None:
        session = SessionContext()
        _session.set(session)
    return session


def clear_session_context() -> None:
    """Clear the session context (call at end of session)."""
    _session.set(None)
