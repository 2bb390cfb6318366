"""CLI command implementations for the AI Media Gallery."""
