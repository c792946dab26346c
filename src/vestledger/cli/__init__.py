"""Command-line interface for vestledger."""
