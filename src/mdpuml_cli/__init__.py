"""Command-line interface for mdpuml."""
