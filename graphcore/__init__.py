"""Shared library for the m365 CLI: Graph client, auth, config and CLI plumbing."""
