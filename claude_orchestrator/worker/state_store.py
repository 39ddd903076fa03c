"""Load, save and update the persisted iteration state."""

import hashlib
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..core.task_storage import atomic_write_text
from ..models.state import IterationState

logger = logging.getLogger(__name__)


def load_state(path: Path) -> IterationState:
    """Load the iteration state, or start fresh when none (or no valid one) exists."""
    if not path.exists():
        return IterationState()
    try:
        return IterationState.model_validate_json(path.read_text())
    except (OSError, ValidationError) as e:
        logger.warning(f"Discarding unreadable state file {path}: {e}")
        return IterationState()


def save_state(path: Path, state: IterationState) -> None:
    """Persist the state atomically."""
    atomic_write_text(path, state.model_dump_json(indent=2))


def hash_progress(progress_path: Path) -> Optional[str]:
    """Content hash of the progress artifact, or None if it does not exist."""
    try:
        return hashlib.md5(progress_path.read_bytes()).hexdigest()
    except (FileNotFoundError, IsADirectoryError):
        return None


def update_stagnation(state: IterationState, progress_path: Path) -> int:
    """Fold the current progress hash into the state.

    A missing progress file never counts as stagnant.

    Returns:
        The updated consecutive-stagnant-iteration count
    """
    current = hash_progress(progress_path)
    if current is not None and current == state.progress_hash:
        state.stagnant_count += 1
    else:
        state.stagnant_count = 0
    state.progress_hash = current
    return state.stagnant_count
