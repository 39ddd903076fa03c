"""Streaming agent invocation over the Claude Agent SDK.

The iteration loop only sees the small message types defined here, so the
SDK can be swapped for a scripted fake in tests.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol, Union

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    HookMatcher,
    PermissionResultAllow,
    PermissionResultDeny,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)


@dataclass
class AgentInit:
    session_id: Optional[str]
    model: Optional[str] = None


@dataclass
class AgentText:
    text: str


@dataclass
class AgentToolUse:
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentResult:
    """Terminating message of one agent invocation."""
    session_id: Optional[str]
    cost_usd: float = 0.0
    num_turns: int = 0
    subtype: str = "success"
    result_text: Optional[str] = None
    is_error: bool = False


AgentMessage = Union[AgentInit, AgentText, AgentToolUse, AgentResult]

# Returns a deny reason, or None to allow.
ToolPolicy = Callable[[str, Dict[str, Any]], Optional[str]]
# Receives the Stop hook input; returns hook output ({} to allow the stop).
StopHook = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass
class AgentRequest:
    """Everything needed for one bounded agent invocation."""
    prompt: str
    cwd: Path
    max_turns: int
    max_budget_usd: Optional[float] = None
    resume: Optional[str] = None
    fork_session: bool = False
    system_prompt: Optional[str] = None
    system_prompt_append: Optional[str] = None
    tool_policy: Optional[ToolPolicy] = None
    stop_hook: Optional[StopHook] = None
    on_compact: Optional[Callable[[], None]] = None
    mcp_servers: Dict[str, Any] = field(default_factory=dict)


class Agent(Protocol):
    def stream(self, request: AgentRequest) -> AsyncIterator[AgentMessage]: ...


def _system_prompt(request: AgentRequest) -> Union[str, Dict[str, Any], None]:
    if request.system_prompt is not None:
        return request.system_prompt
    if request.system_prompt_append:
        return {"type": "preset", "preset": "claude_code", "append": request.system_prompt_append}
    return None


def build_options(request: AgentRequest) -> ClaudeAgentOptions:
    """Translate an AgentRequest into SDK options, wiring policy and hooks."""
    hooks = {}

    if request.stop_hook is not None:
        stop_hook = request.stop_hook

        async def on_stop(input_data, tool_use_id, context):
            return stop_hook(input_data)

        hooks["Stop"] = [HookMatcher(hooks=[on_stop])]

    if request.on_compact is not None:
        on_compact = request.on_compact

        async def on_pre_compact(input_data, tool_use_id, context):
            on_compact()
            return {}

        hooks["PreCompact"] = [HookMatcher(hooks=[on_pre_compact])]

    can_use_tool = None
    if request.tool_policy is not None:
        tool_policy = request.tool_policy

        async def can_use_tool(tool_name, tool_input, context):
            reason = tool_policy(tool_name, tool_input)
            if reason is not None:
                logger.info(f"Denied {tool_name}: {reason}")
                return PermissionResultDeny(message=reason)
            return PermissionResultAllow(updated_input=tool_input)

    return ClaudeAgentOptions(
        cwd=str(request.cwd),
        max_turns=request.max_turns,
        max_budget_usd=request.max_budget_usd,
        resume=request.resume,
        fork_session=request.fork_session,
        system_prompt=_system_prompt(request),
        can_use_tool=can_use_tool,
        hooks=hooks or None,
        mcp_servers=request.mcp_servers,
        setting_sources=["project"],
    )


class ClaudeAgent:
    """Agent backed by ``ClaudeSDKClient``."""

    async def stream(self, request: AgentRequest) -> AsyncIterator[AgentMessage]:
        options = build_options(request)
        async with ClaudeSDKClient(options=options) as client:
            await client.query(request.prompt)
            async for message in client.receive_response():
                converted = convert_message(message)
                if converted is None:
                    continue
                for item in converted:
                    yield item


def convert_message(message: Any) -> Optional[list]:
    """Normalize one SDK message; returns None for messages the loop ignores."""
    if isinstance(message, SystemMessage):
        if message.subtype != "init":
            return None
        data = message.data or {}
        return [AgentInit(session_id=data.get("session_id"), model=data.get("model"))]

    if isinstance(message, AssistantMessage):
        items = []
        for block in message.content:
            if isinstance(block, TextBlock):
                items.append(AgentText(text=block.text))
            elif isinstance(block, ToolUseBlock):
                items.append(AgentToolUse(name=block.name, input=dict(block.input or {})))
        return items

    if isinstance(message, ResultMessage):
        return [AgentResult(
            session_id=message.session_id,
            cost_usd=message.total_cost_usd or 0.0,
            num_turns=message.num_turns,
            subtype=message.subtype,
            result_text=message.result,
            is_error=message.is_error,
        )]

    return None


def load_mcp_servers(config_file: Path) -> Dict[str, Any]:
    """Read the ``mcpServers`` mapping from a workspace MCP config, if present."""
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable MCP config {config_file}: {e}")
        return {}
    servers = data.get("mcpServers", {}) if isinstance(data, dict) else {}
    return servers if isinstance(servers, dict) else {}
