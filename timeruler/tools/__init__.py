"""Command-line tools (internal)."""
