"""
Persistence adapters.

Callers receive a store instance and go through it instead of touching the
JSON file.
"""
