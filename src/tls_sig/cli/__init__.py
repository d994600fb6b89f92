"""Command-line interface for tls-sig."""
