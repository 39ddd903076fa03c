"""Completion check models shared between host and worker."""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..core.constants import DEFAULT_CHECK_TIMEOUT


class CommandCheck(BaseModel):
    """Run a shell command in the workspace; passes on exit code 0."""
    model_config = ConfigDict(frozen=True)

    type: Literal["command"] = "command"
    cmd: str
    timeout_sec: int = Field(default=DEFAULT_CHECK_TIMEOUT, gt=0)


class FileExistsCheck(BaseModel):
    """Passes when a path (relative to the workspace) exists."""
    model_config = ConfigDict(frozen=True)

    type: Literal["file_exists"] = "file_exists"
    path: str


class GlobExistsCheck(BaseModel):
    """Passes when a glob pattern matches at least ``min_count`` paths."""
    model_config = ConfigDict(frozen=True)

    type: Literal["glob_exists"] = "glob_exists"
    pattern: str
    min_count: int = Field(default=1, ge=0)


class ReviewCheck(BaseModel):
    """AI review against natural-language criteria."""
    model_config = ConfigDict(frozen=True)

    type: Literal["review"] = "review"
    prompt: str
    files: List[str] = Field(default_factory=list)


CompletionCheck = Annotated[
    Union[CommandCheck, FileExistsCheck, GlobExistsCheck, ReviewCheck],
    Field(discriminator="type"),
]

_checks_adapter = TypeAdapter(List[CompletionCheck])


def parse_completion_checks(raw: str) -> List[CompletionCheck]:
    """Parse a JSON array of completion checks.

    Raises:
        pydantic.ValidationError: If the JSON is malformed or a check is invalid
    """
    return _checks_adapter.validate_json(raw)


def dump_completion_checks(checks: List[CompletionCheck]) -> str:
    """Serialize completion checks to a JSON array."""
    return _checks_adapter.dump_json(list(checks)).decode("utf-8")
