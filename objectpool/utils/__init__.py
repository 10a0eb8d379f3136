"""Shared helpers for objectpool (logging)."""
