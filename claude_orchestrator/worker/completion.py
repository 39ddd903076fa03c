"""Completion checks run against the workspace before a completion signal is trusted."""

import asyncio
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.constants import REVIEW_SYSTEM_PROMPT
from ..models.checks import (
    CommandCheck,
    CompletionCheck,
    FileExistsCheck,
    GlobExistsCheck,
    ReviewCheck,
)
from .agent import Agent, AgentRequest, AgentResult, AgentText

logger = logging.getLogger(__name__)

REVIEW_MAX_TURNS = 10
REASON_LIMIT = 200
OUTPUT_TAIL = 500


@dataclass
class CheckResult:
    """Outcome of one check.

    ``errored`` marks a check that could not run at all (timeout, spawn
    failure, review crash) as opposed to one that ran and did not pass.
    """
    label: str
    passed: bool
    errored: bool = False
    reason: Optional[str] = None


@dataclass
class CompletionReport:
    all_passed: bool
    summary: str
    results: List[CheckResult] = field(default_factory=list)


def describe_check(check: CompletionCheck) -> str:
    if isinstance(check, CommandCheck):
        return f"command: {check.cmd}"
    if isinstance(check, FileExistsCheck):
        return f"file_exists: {check.path}"
    if isinstance(check, GlobExistsCheck):
        return f"glob_exists: {check.pattern} (>= {check.min_count})"
    if isinstance(check, ReviewCheck):
        return f"review: {check.prompt[:60]}"
    raise TypeError(f"Unknown completion check: {check!r}")


def _tail(text: str, limit: int = OUTPUT_TAIL) -> str:
    text = text.strip()
    return text[-limit:] if len(text) > limit else text


async def run_command_check(check: CommandCheck, cwd: Path) -> CheckResult:
    label = describe_check(check)
    try:
        result = await asyncio.to_thread(
            subprocess.run,
            check.cmd,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=check.timeout_sec,
        )
    except subprocess.TimeoutExpired:
        return CheckResult(label, passed=False, errored=True,
                           reason=f"timed out after {check.timeout_sec}s")
    except OSError as e:
        return CheckResult(label, passed=False, errored=True, reason=f"could not run: {e}")

    if result.returncode == 0:
        return CheckResult(label, passed=True)
    output = _tail((result.stdout or "") + (result.stderr or ""))
    reason = f"exit code {result.returncode}"
    if output:
        reason += f": {output}"
    return CheckResult(label, passed=False, reason=reason)


def run_file_exists_check(check: FileExistsCheck, cwd: Path) -> CheckResult:
    label = describe_check(check)
    if (cwd / check.path).exists():
        return CheckResult(label, passed=True)
    return CheckResult(label, passed=False, reason=f"{check.path} does not exist")


def run_glob_check(check: GlobExistsCheck, cwd: Path) -> CheckResult:
    label = describe_check(check)
    try:
        count = sum(1 for _ in cwd.glob(check.pattern))
    except (ValueError, NotImplementedError) as e:
        return CheckResult(label, passed=False, errored=True, reason=f"invalid pattern: {e}")
    if count >= check.min_count:
        return CheckResult(label, passed=True)
    return CheckResult(label, passed=False,
                       reason=f"found {count} match(es), need at least {check.min_count}")


def build_review_prompt(check: ReviewCheck, task_prompt: str) -> str:
    lines = [
        "Review the work in this workspace.",
        "",
        f"Original task: {task_prompt}",
        "",
        f"Review criteria: {check.prompt}",
    ]
    if check.files:
        lines += ["", "Focus on these files:"] + [f"- {f}" for f in check.files]
    lines += ["", "Respond with PASS or FAIL on the first line, then explain why."]
    return "\n".join(lines)


def parse_review_verdict(text: str) -> tuple[bool, Optional[str]]:
    """Return (passed, reason) from a review response."""
    stripped = text.strip()
    first_line, _, rest = stripped.partition("\n")
    if first_line.strip().upper().startswith("PASS"):
        return True, None
    reason = rest.strip() or first_line.strip() or "Review returned no verdict"
    return False, reason[:REASON_LIMIT]


async def run_review_check(check: ReviewCheck, cwd: Path, agent: Agent, task_prompt: str) -> CheckResult:
    label = describe_check(check)
    request = AgentRequest(
        prompt=build_review_prompt(check, task_prompt),
        cwd=cwd,
        max_turns=REVIEW_MAX_TURNS,
        system_prompt=REVIEW_SYSTEM_PROMPT,
    )
    texts = []
    result_text = None
    try:
        async for message in agent.stream(request):
            if isinstance(message, AgentText):
                texts.append(message.text)
            elif isinstance(message, AgentResult):
                result_text = message.result_text
    except Exception as e:
        logger.warning(f"Review check failed to run: {e}")
        return CheckResult(label, passed=False, errored=True, reason=f"Review failed to run: {e}")

    passed, reason = parse_review_verdict(result_text or "\n".join(texts))
    return CheckResult(label, passed=passed, reason=reason)


async def run_check(check: CompletionCheck, cwd: Path, agent: Agent, task_prompt: str) -> CheckResult:
    if isinstance(check, CommandCheck):
        return await run_command_check(check, cwd)
    if isinstance(check, FileExistsCheck):
        return run_file_exists_check(check, cwd)
    if isinstance(check, GlobExistsCheck):
        return run_glob_check(check, cwd)
    if isinstance(check, ReviewCheck):
        return await run_review_check(check, cwd, agent, task_prompt)
    raise TypeError(f"Unknown completion check: {check!r}")


def summarize(results: Sequence[CheckResult]) -> str:
    if not results:
        return "No completion checks configured"
    lines = []
    for result in results:
        if result.passed:
            status = "PASS"
        elif result.errored:
            status = "ERROR"
        else:
            status = "FAIL"
        line = f"[{status}] {result.label}"
        if result.reason:
            line += f": {result.reason}"
        lines.append(line)
    return "\n".join(lines)


async def run_completion_checks(
    checks: Sequence[CompletionCheck],
    cwd: Path,
    agent: Agent,
    task_prompt: str,
) -> CompletionReport:
    """Run every check in order; all must pass. No checks means complete."""
    results = []
    for check in checks:
        results.append(await run_check(check, Path(cwd), agent, task_prompt))
    return CompletionReport(
        all_passed=all(r.passed for r in results),
        summary=summarize(results),
        results=results,
    )
