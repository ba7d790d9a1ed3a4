"""
Upstate Home Copilot - Session Logger.

Lightweight observability for onboarding sessions.

Features:
- One JSONL file per session (easy to parse, tail -f friendly)
- Turn start/end with the question answered and the decision taken
- Record lifecycle events (created, saved, reset)
- Smart truncation of large values

Usage:
    from copilot.observability.session_logger import init_session_logger

    session_log = init_session_logger()
    session_log.turn_start("123 Main St, Hudson, NY 12534")
    session_log.turn_end("How old is the house?", question="location", decision="advance")
    session_log.close()

Log format (JSONL):
    {"ts": "2026-01-01T17:30:00", "event": "turn_start", "turn": 1, ...}
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any


# =============================================================================
# Configuration
# =============================================================================

# Where to write logs
LOG_DIR = Path("session_logs")

# Max string length before truncation
MAX_STRING_LEN = 200

# Max list items to show
MAX_LIST_ITEMS = 5

# Max dict keys to show
MAX_DICT_KEYS = 10


# =============================================================================
# Smart Truncation
# =============================================================================


def _truncate_value(value: Any, depth: int = 0) -> Any:
    """
    Smart truncation of values for logging.

    - Strings > MAX_STRING_LEN get truncated with "..."
    - Lists > MAX_LIST_ITEMS show first N + count
    - Dicts > MAX_DICT_KEYS show first N keys + count
    - Nested structures respect depth limit
    """
    if depth > 3:
        return "<nested>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, list):
        if len(value) <= MAX_LIST_ITEMS:
            return [_truncate_value(v, depth + 1) for v in value]
        truncated = [_truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        return truncated + [f"... +{len(value) - MAX_LIST_ITEMS} more"]

    if isinstance(value, dict):
        result = {}
        for k in list(value.keys())[:MAX_DICT_KEYS]:
            result[k] = _truncate_value(value[k], depth + 1)
        if len(value) > MAX_DICT_KEYS:
            result["_truncated"] = f"+{len(value) - MAX_DICT_KEYS} keys"
        return result

    if hasattr(value, "to_dict"):
        return _truncate_value(value.to_dict(), depth)

    return str(value)[:MAX_STRING_LEN]


# =============================================================================
# Session Logger
# =============================================================================


class SessionLogger:
    """Per-session logger that writes JSONL to a file."""

    def __init__(self, session_id: str | None = None, enabled: bool = True, log_dir: Path | None = None):
        """
        Initialize session logger.

        Args:
            session_id: Optional custom session ID. Default: timestamp-based.
            enabled: If False, all logging is no-op.
            log_dir: Directory for log files. Default: session_logs/
        """
        self.enabled = enabled
        self._turn_count = 0

        if not enabled:
            self.log_file = None
            self.log_path = None
            return

        log_dir = log_dir or LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        if session_id is None:
            session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.session_id = session_id
        self.log_path = log_dir / f"session_{session_id}.jsonl"
        self.log_file = open(self.log_path, "a", encoding="utf-8")

        self._write({
            "event": "session_start",
            "session_id": session_id,
        })

    def _write(self, data: dict) -> None:
        """Write a log entry."""
        if not self.enabled or self.log_file is None:
            return

        entry = {
            "ts": datetime.now().isoformat(),
            **data,
        }
        self.log_file.write(json.dumps(entry, default=str) + "\n")
        self.log_file.flush()  # tail -f

    # =========================================================================
    # Turn Events
    # =========================================================================

    def turn_start(self, user_message: str) -> None:
        """Log start of a reply."""
        self._turn_count += 1

        self._write({
            "event": "turn_start",
            "turn": self._turn_count,
            "user_message": _truncate_value(user_message),
        })

    def turn_end(
        self,
        response: str,
        question: str | None = None,
        decision: str | None = None,
        next_question: str | None = None,
    ) -> None:
        """Log end of a reply."""
        self._write({
            "event": "turn_end",
            "turn": self._turn_count,
            "question": question,
            "decision": decision,
            "next_question": next_question,
            "response_len": len(response),
            "response_preview": response[:150] + "..." if len(response) > 150 else response,
        })

    # =========================================================================
    # Record Events
    # =========================================================================

    def record_event(self, action: str, record_id: str | None, snapshot: dict | None = None) -> None:
        """Log a property record lifecycle event (created, saved, reset)."""
        self._write({
            "event": "record",
            "action": action,
            "turn": self._turn_count,
            "record_id": record_id[:8] if record_id else None,
            "snapshot": _truncate_value(snapshot) if snapshot else None,
        })

    # =========================================================================
    # Custom Events
    # =========================================================================

    def log(self, event_type: str, **kwargs) -> None:
        """Log custom event."""
        self._write({
            "event": event_type,
            "turn": self._turn_count,
            **_truncate_value(kwargs),
        })

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> str | None:
        """Close the log file. Returns log path."""
        if self.log_file:
            self._write({"event": "session_end", "total_turns": self._turn_count})
            self.log_file.close()
            self.log_file = None
            return str(self.log_path)
        return None


# =============================================================================
# Global Instance (for convenience)
# =============================================================================

_global_logger: SessionLogger | None = None


def get_session_logger() -> SessionLogger:
    """Get or create the global session logger."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SessionLogger(enabled=False)  # Disabled by default
    return _global_logger


def init_session_logger(session_id: str | None = None) -> SessionLogger:
    """Initialize a new global session logger."""
    global _global_logger
    if _global_logger is not None:
        _global_logger.close()
    _global_logger = SessionLogger(session_id=session_id, enabled=True)
    return _global_logger


def close_session_logger() -> str | None:
    """Close the global session logger."""
    global _global_logger
    if _global_logger is not None:
        path = _global_logger.close()
        _global_logger = None
        return path
    return None
