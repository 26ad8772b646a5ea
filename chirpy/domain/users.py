"""User record and its mapping to the persisted JSON layout."""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class User:
    """One user record. ``User()`` is the empty/default record (id 0)."""

    id: int = 0
    email: str = ""
    password: bytes = b""
    refresh_token: str = ""
    is_chirpy_red: bool = False

    @property
    def is_empty(self) -> bool:
        return self.id == 0

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def with_changes(self, **changes: Any) -> "User":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "id": self.id,
            "password": encode_password(self.password),
            "refreshToken": self.refresh_token,
            "is_chirpy_red": self.is_chirpy_red,
        }

    def public_dict(self) -> dict:
        """Fields safe to hand to a response renderer (no password)."""
        data = self.to_dict()
        data.pop("password")
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        if not isinstance(data, Mapping):
            raise ValueError(f"user record must be an object, got {type(data).__name__}")
        user_id = data.get("id", 0)
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise ValueError(f"user id must be an integer, got {user_id!r}")
        is_chirpy_red = data.get("is_chirpy_red")
        if is_chirpy_red is None:
            is_chirpy_red = False
        elif not isinstance(is_chirpy_red, bool):
            raise ValueError(f"is_chirpy_red must be a boolean, got {is_chirpy_red!r}")
        return cls(
            id=user_id,
            email=_string_field(data, "email"),
            password=decode_password(data.get("password")),
            refresh_token=_string_field(data, "refreshToken"),
            is_chirpy_red=is_chirpy_red,
        )


def _string_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {value!r}")
    return value


def encode_password(value: bytes) -> str:
    # Byte arrays are stored as standard base64 strings.
    return base64.b64encode(value or b"").decode("ascii")


def decode_password(value: Any) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ValueError("password must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"password is not valid base64: {exc}") from exc
