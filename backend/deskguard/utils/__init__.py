"""Shared helpers (Redis, audit sink)."""
