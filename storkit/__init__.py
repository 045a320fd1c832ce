"""Helpers for a cluster storage operator: resource lifecycle, scheduling checks and settings."""

__version__ = "0.1.0"