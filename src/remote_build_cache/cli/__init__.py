"""Command-line interface for build-cache."""
