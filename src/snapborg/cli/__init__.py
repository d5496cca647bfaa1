"""Command line interface for snapborg."""
