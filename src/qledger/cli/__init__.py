"""Command line interface for QLedger."""
