"""Command-line interface for ipm-repo."""
