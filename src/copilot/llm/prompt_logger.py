"""
Upstate Home Copilot - Prompt Logger.

Writes every assistant call to its own markdown file so a phrasing can be
traced back to the question it was for and the transcript window the
model saw. One directory per CLI session.

Enabled via COPILOT_LOG_PROMPTS=1 or the --log-prompts CLI flag.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

LOG_PROMPTS = os.getenv("COPILOT_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_session_dir: Path | None = None
_call_counter: int = 0


@dataclass
class PromptRecord:
    """One chat completion call and how it ended."""
    node: str
    model: str
    system_prompt: str
    messages: list[dict[str, str]]
    temperature: float | None = None
    context: dict[str, str] = field(default_factory=dict)
    reply: str | None = None
    error: str | None = None
    elapsed_ms: int | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_markdown(self, number: int) -> str:
        lines = [f"# {number:02d} {self.node}", "", f"- model: {self.model}"]
        if self.temperature is not None:
            lines.append(f"- temperature: {self.temperature}")
        if self.elapsed_ms is not None:
            lines.append(f"- elapsed: {self.elapsed_ms} ms")
        lines += [f"- {key}: {value}" for key, value in self.context.items()]

        lines += ["", "## Transcript window", ""]
        if not self.messages:
            lines.append("(no messages)")
        for message in self.messages:
            content = message["content"].replace("\n", "\n> ")
            lines.append(f"> **{message['role']}:** {content}")
            lines.append("")

        lines += ["", "## Instructions", "", "```", self.system_prompt, "```", "", "## Outcome", ""]
        if self.failed:
            lines.append(f"FAILED: {self.error}")
        else:
            lines.append(self.reply or "(empty reply)")
        return "\n".join(lines) + "\n"


def enable_prompt_logging(enabled: bool = True) -> None:
    """Turn prompt logging on or off for the rest of the process."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled


def get_session_log_dir() -> Path | None:
    """This session's log directory, created on first use. None when disabled."""
    global _session_dir
    if not LOG_PROMPTS:
        return None
    if _session_dir is None:
        _session_dir = LOG_DIR / datetime.now().strftime("%Y%m%d_%H%M%S")
    _session_dir.mkdir(parents=True, exist_ok=True)
    return _session_dir


def log_prompt(record: PromptRecord) -> Path | None:
    """Write the record as NN_<node>.md. Returns the path, or None when disabled."""
    global _call_counter
    session_dir = get_session_log_dir()
    if session_dir is None:
        return None

    _call_counter += 1
    path = session_dir / f"{_call_counter:02d}_{record.node}.md"
    path.write_text(record.to_markdown(_call_counter), encoding="utf-8")
    return path


def reset_session() -> None:
    """Start a new log directory and numbering on the next call."""
    global _session_dir, _call_counter
    _session_dir = None
    _call_counter = 0
