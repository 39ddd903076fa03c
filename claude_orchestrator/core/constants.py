"""Constants used throughout the Claude Orchestrator application."""


# Host directory layout
HOME_ENV_VAR = "CLAUDE_ORCHESTRATOR_HOME"
DEFAULT_HOME_DIR_NAME = ".claude-orchestrator"
CONFIG_FILE_NAME = "config.json"
LOGS_DIR_NAME = "logs"
WORKSPACES_DIR_NAME = "workspaces"
AUTH_DIR_NAME = "auth"
TASKS_DIR_NAME = "tasks"
CLAUDE_JSON_NAME = "claude.json"
EVENTS_FILE_NAME = "events.jsonl"
STATE_FILE_NAME = "state.json"

# Docker-related constants
IMAGE_NAME = "claude-orchestrator:latest"
DOCKERFILE_NAME = "Dockerfile"
CONTAINER_PREFIX = "claude-orchestrator"
LABEL_PREFIX = "claude-orchestrator"
CONTAINER_WORKSPACE = "/workspace"
CONTAINER_LOG_DIR = "/logs"
CONTAINER_HOME = "/home/worker"
DEFAULT_MEMORY_MB = 4096
DEFAULT_CPUS = 2.0

# Timeout values (seconds)
CONTAINER_STOP_TIMEOUT = 10
ORPHAN_STOP_TIMEOUT = 5
TAILER_POLL_INTERVAL = 0.5
TAILER_DRAIN_GRACE = 1.0
SHUTDOWN_GRACE = 15.0
DEFAULT_CHECK_TIMEOUT = 300

# Task defaults
DEFAULT_MAX_CONCURRENT = 3
DEFAULT_MAX_ITERATIONS = 10
DEFAULT_MAX_HOURS = 4.0
DEFAULT_MAX_BUDGET_USD = 30.0
DEFAULT_TURNS_PER_ITERATION = 30

# Workspace integration
BRANCH_PREFIX = "claude-orchestrator"
AUTO_COMMIT_MESSAGE = "Uncommitted changes from claude-orchestrator task"

# Worker-side files, relative to the workspace
WORKER_STATE_DIR = ".orchestrator"
SIGNAL_FILE_NAME = "task-signal"
PROGRESS_FILE_NAME = "progress.md"
MCP_CONFIG_FILE_NAME = ".mcp.orchestrator.json"

# Signal file values
SIGNAL_COMPLETE = "TASK_COMPLETE"
SIGNAL_BLOCKED = "TASK_BLOCKED"

# Iteration loop thresholds
STAGNATION_THRESHOLD = 3
FORK_COMPACTION_THRESHOLD = 3
STOP_HOOK_MAX_BLOCKS = 5
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_MAX_SECONDS = 30.0

# Worker exit codes
EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_BLOCKED = 2

# Tool-access policy
DENY_BASH_PATTERNS = [
    r"\brm\s+(?:-\w*r\w*\s+-\w*f\w*|-\w*f\w*\s+-\w*r\w*|-\w*(?:rf|fr)\w*|--recursive\s+--force|--force\s+--recursive)\s+[/~.]",
    r"\bgit\s+push\b.*(?:--force\b|\s-f\b)",
    r"\bgit\s+reset\s+--hard\b",
    r"\bgit\s+clean\s+.*-\w*f",
    r"\b(?:npm|yarn|pnpm)\s+publish\b",
    r"\b(?:cargo|poetry)\s+publish\b",
    r"\btwine\s+upload\b",
    r"\b(?:curl|wget)\b.*\|\s*(?:sudo\s+)?(?:sh|bash|zsh)\b",
]
PROTECTED_FILES = [".env", ".npmrc", ".pypirc"]
WRITE_TOOLS = ["Write", "Edit", "MultiEdit", "NotebookEdit"]

# Agent prompts
FRESH_PROMPT_SUFFIX = (
    "\n\nCheck .orchestrator/progress.md for any prior progress."
)
CONTINUE_PROMPT = (
    "Continue working. Check .orchestrator/progress.md for current state."
)
SYSTEM_PROMPT_APPEND = (
    "You are in autonomous mode. "
    "Update .orchestrator/progress.md as you work. "
    "When the task is fully complete, commit all changes with a descriptive message "
    "using `git add -A && git commit -m '...'`, "
    "then write TASK_COMPLETE to .orchestrator/task-signal. "
    "If stuck after 3 attempts at the same issue, write TASK_BLOCKED to .orchestrator/task-signal."
)
STOP_HOOK_REASON = (
    "Task is not complete. Check .orchestrator/progress.md and continue working. "
    "When finished, write TASK_COMPLETE to .orchestrator/task-signal. "
    "If stuck, write TASK_BLOCKED to .orchestrator/task-signal."
)
REVIEW_SYSTEM_PROMPT = (
    "You are a strict code reviewer. You have full access to the workspace. "
    "Read whatever files you need to evaluate the review criteria. "
    "Respond with PASS or FAIL on the first line, then explain why."
)
