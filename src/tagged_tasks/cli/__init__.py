"""Command-line interface for tagged-tasks."""
