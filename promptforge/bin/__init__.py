"""Command-line entry points for prompt-forge."""
