"""Domain types shared by repositories and callers."""

from .users import User

__all__ = ["User"]
