"""Shared utilities: errors, logging, polling and task groups."""
