"""Claude Orchestrator - Run autonomous Claude agent tasks in isolated Docker environments."""

__version__ = "0.1.0"
