"""Task definition files: YAML front matter followed by the prompt body."""

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..models.task import TaskCreateInput
from ..services.exceptions import TaskFileError

FRONT_MATTER_DELIMITER = "---"

TASK_FILE_KEYS = (
    "max_iterations",
    "max_hours",
    "max_budget_usd",
    "turns_per_iteration",
    "fresh_context",
    "completion_checks",
)


def split_front_matter(text: str) -> tuple[str, str]:
    """Split ``---`` delimited front matter from the body.

    Raises:
        TaskFileError: If the text does not start with front matter
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        raise TaskFileError("Task file must start with YAML front matter (--- delimited)")

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == FRONT_MATTER_DELIMITER:
            return "\n".join(lines[1:index]), "\n".join(lines[index + 1:])

    raise TaskFileError("Task file front matter is not closed with ---")


def load_task_file(path: Path, project_dir: Path) -> TaskCreateInput:
    """Build a task input from a task definition file.

    Raises:
        TaskFileError: If the file is unreadable, malformed, or has invalid settings
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise TaskFileError(f"Could not read task file {path}: {e}") from e

    front_matter, body = split_front_matter(text)
    try:
        settings = yaml.safe_load(front_matter) or {}
    except yaml.YAMLError as e:
        raise TaskFileError(f"Invalid YAML front matter in {path}: {e}") from e
    if not isinstance(settings, dict):
        raise TaskFileError(f"Front matter in {path} must be a mapping")

    unknown = sorted(set(settings) - set(TASK_FILE_KEYS))
    if unknown:
        raise TaskFileError(f"Unknown setting(s) in {path}: {', '.join(unknown)}")

    fields: Dict[str, Any] = {key: settings[key] for key in TASK_FILE_KEYS if key in settings}
    try:
        return TaskCreateInput(prompt=body.strip(), project_dir=str(project_dir), **fields)
    except ValidationError as e:
        raise TaskFileError(f"Invalid task file {path}: {e}") from e
