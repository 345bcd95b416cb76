"""Command-line interface for the keyring broker."""
