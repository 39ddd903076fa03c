"""CLI commands for Claude Orchestrator."""
