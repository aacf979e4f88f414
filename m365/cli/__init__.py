"""Command-line interface for m365."""
