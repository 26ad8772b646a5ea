"""
Core utilities shared across the Chirpy user store.

This package hosts configuration helpers (env vars, storage paths, flags)
and the logging setup used by scripts.
"""
