"""
Core utilities shared across the school storage core.

This package hosts configuration helpers (env vars, backend selection,
file paths) and the logging bootstrap used by the application factory.
"""
