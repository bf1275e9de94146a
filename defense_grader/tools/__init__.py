"""Command-line and web tools built on the scoring libraries."""
