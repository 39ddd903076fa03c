"""Tool-access policy, stop hook and signal-file helpers for the worker."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..core.constants import (
    DENY_BASH_PATTERNS,
    PROTECTED_FILES,
    SIGNAL_BLOCKED,
    SIGNAL_COMPLETE,
    STOP_HOOK_MAX_BLOCKS,
    STOP_HOOK_REASON,
    WRITE_TOOLS,
)
from ..models.state import IterationState
from .agent import StopHook

logger = logging.getLogger(__name__)

VALID_SIGNALS = (SIGNAL_COMPLETE, SIGNAL_BLOCKED)

_DENY_BASH = [re.compile(pattern, re.IGNORECASE) for pattern in DENY_BASH_PATTERNS]


def read_signal_file(signal_path: Path) -> Optional[str]:
    """Return the recognized signal in the file, or None."""
    try:
        value = signal_path.read_text().strip()
    except (FileNotFoundError, IsADirectoryError):
        return None
    return value if value in VALID_SIGNALS else None


def clear_signal_file(signal_path: Path) -> None:
    signal_path.unlink(missing_ok=True)


def _is_protected(file_path: str, protected_paths: Iterable[Path]) -> bool:
    candidate = Path(file_path)
    if candidate.name in PROTECTED_FILES:
        return True
    for protected in protected_paths:
        try:
            if candidate.resolve() == Path(protected).resolve():
                return True
        except OSError:
            continue
    return False


def evaluate_tool_use(
    tool_name: str,
    tool_input: Dict[str, Any],
    protected_paths: Iterable[Path] = (),
) -> Optional[str]:
    """Apply the tool-access policy.

    Returns:
        A deny reason, or None when the tool use is allowed
    """
    if tool_name == "Bash":
        command = str(tool_input.get("command", ""))
        for pattern in _DENY_BASH:
            if pattern.search(command):
                return f"Blocked destructive command: {command}"
        return None

    if tool_name in WRITE_TOOLS:
        file_path = tool_input.get("file_path") or tool_input.get("notebook_path")
        if file_path and _is_protected(str(file_path), protected_paths):
            return f"Writes to {file_path} are not allowed"

    return None


def build_tool_policy(protected_paths: List[Path]):
    """Bind the protected paths into a policy callable for the agent."""
    def policy(tool_name: str, tool_input: Dict[str, Any]) -> Optional[str]:
        return evaluate_tool_use(tool_name, tool_input, protected_paths)
    return policy


def build_stop_hook(signal_path: Path, max_blocks: int = STOP_HOOK_MAX_BLOCKS) -> StopHook:
    """Stop hook that keeps the agent working until it writes a valid signal.

    After ``max_blocks`` consecutive blocks without a signal the stop is
    allowed so the outer loop can re-evaluate.
    """
    blocks = 0

    def on_stop(input_data: Dict[str, Any]) -> Dict[str, Any]:
        nonlocal blocks
        if read_signal_file(signal_path) is not None:
            blocks = 0
            return {}
        if blocks >= max_blocks:
            logger.info(f"Stop hook released after {blocks} consecutive blocks")
            blocks = 0
            return {}
        blocks += 1
        return {"decision": "block", "reason": STOP_HOOK_REASON}

    return on_stop


def build_compact_hook(state: IterationState):
    """Count context compactions on the live iteration state."""
    def on_compact() -> None:
        state.compactions += 1
        logger.info(f"Context compaction #{state.compactions}")
    return on_compact
