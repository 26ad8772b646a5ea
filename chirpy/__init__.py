"""File-backed user store for the Chirpy service."""

__version__ = "0.1.0"
