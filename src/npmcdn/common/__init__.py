"""Shared helpers for npmcdn modules."""
