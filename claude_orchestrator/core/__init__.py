"""Core functionality for Claude Orchestrator."""
