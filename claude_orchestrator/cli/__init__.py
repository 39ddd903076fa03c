"""Command line interface for Claude Orchestrator."""
