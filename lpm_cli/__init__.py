"""Command line interface for lpm."""
