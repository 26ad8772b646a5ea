"""
JSON-file persistence for user records.

The whole document is loaded, mutated in memory and written back on every
call, under one lock per store instance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import json
import logging
import os
import re
import stat
import tempfile
import threading

from chirpy.core.config import Settings, get_settings
from chirpy.domain.users import User

logger = logging.getLogger(__name__)

USER_KEY_PATTERN = re.compile(r"[1-9][0-9]*")


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class StoreError(Exception):
    """Base class for user store failures."""


class StorageIOError(StoreError):
    pass


class InvalidUserIDError(StoreError, ValueError):
    pass


class UserNotFoundError(StoreError, LookupError):
    pass


class UserStore:
    """Thread-safe user store backed by a single JSON file."""

    def __init__(self, path: str | os.PathLike, *, atomic_writes: bool = True) -> None:
        self.path = Path(path)
        self.atomic_writes = atomic_writes
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: str | os.PathLike, *, atomic_writes: bool = True) -> "UserStore":
        """Return a store for ``path``, creating an empty document if the file is missing."""
        store = cls(path, atomic_writes=atomic_writes)
        with store._lock:
            store._ensure()
        return store

    # -------------------------------------- helpers --------------------------------------
    def _ensure(self) -> None:
        if self.path.exists():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Could not create directory for %s: %s", self.path, exc)
            raise StorageIOError(f"cannot create {self.path}: {exc}") from exc
        logger.info("Creating empty user database at %s", self.path)
        self._save({})

    def _load(self) -> dict[int, User]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load user database %s: %s", self.path, exc)
            raise StorageIOError(f"cannot read {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            logger.error("User database %s is not a JSON object", self.path)
            raise StorageIOError(f"cannot read {self.path}: document is not an object")
        users_raw = raw.get("users")
        if users_raw is None:
            users_raw = {}
        if not isinstance(users_raw, dict):
            logger.error("User database %s has a malformed users map", self.path)
            raise StorageIOError(f"cannot read {self.path}: 'users' is not an object")

        users: dict[int, User] = {}
        try:
            for key, record in users_raw.items():
                if not USER_KEY_PATTERN.fullmatch(key):
                    raise ValueError(f"user key must be a positive integer, got {key!r}")
                users[int(key)] = User.from_dict(record)
        except ValueError as exc:
            logger.error("Malformed user record in %s: %s", self.path, exc)
            raise StorageIOError(f"cannot read {self.path}: {exc}") from exc
        return users

    def _save(self, users: dict[int, User]) -> None:
        document = {"users": {str(user_id): user.to_dict() for user_id, user in users.items()}}
        try:
            # Fully encoded before any file is opened, so a bad payload never truncates.
            payload = json.dumps(document).encode("utf-8")
            if self.atomic_writes:
                self._replace(payload)
            else:
                self.path.write_bytes(payload)
        except (OSError, ValueError) as exc:
            logger.error("Failed to write user database %s: %s", self.path, exc)
            raise StorageIOError(f"cannot write {self.path}: {exc}") from exc
        logger.debug("Wrote %d users to %s", len(users), self.path)

    def _replace(self, payload: bytes) -> None:
        try:
            mode = stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            mode = _default_file_mode()
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    @staticmethod
    def _sorted(users: dict[int, User]) -> list[User]:
        return sorted(users.values(), key=lambda u: u.id)

    # -------------------------------------- users --------------------------------------
    def create_user(self, email: str, password: bytes) -> User:
        with self._lock:
            users = self._load()
            # Not a monotonic counter: ids collide if records are ever removed.
            next_id = len(users) + 1
            user = User(id=next_id, email=email, password=bytes(password))
            users[next_id] = user
            self._save(users)
        logger.info("Created user id=%s", next_id)
        return user

    def list_users(self) -> list[User]:
        """Snapshot of every record, ascending by id."""
        with self._lock:
            return self._sorted(self._load())

    def get_user_by_id(self, user_id: int) -> User:
        """
        Return the ``user_id``-th record in id order.

        The lookup is positional, so it matches the record whose id equals
        ``user_id`` only while ids stay dense from 1.
        """
        users = self.list_users()
        if user_id <= 0 or user_id > len(users):
            raise InvalidUserIDError(f"invalid ID: {user_id}")
        return users[user_id - 1]

    def count_users(self) -> int:
        with self._lock:
            return len(self._load())

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            for user in self._sorted(self._load()):
                if user.email == email:
                    return user
        return None

    def get_user_by_refresh_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        with self._lock:
            for user in self._sorted(self._load()):
                if user.refresh_token == token:
                    return user
        return None

    def update_user(self, user_id: int, email: str, password: bytes) -> User:
        """
        Replace email and password of ``user_id``.

        An unknown id is not reported: the document is rewritten unchanged and
        the empty ``User()`` is returned.
        """
        with self._lock:
            users = self._load()
            user = users.get(user_id)
            if user is not None:
                user = user.with_changes(email=email, password=bytes(password))
                users[user_id] = user
            else:
                logger.warning("update_user: no user with id=%s, nothing changed", user_id)
            self._save(users)
        return user if user is not None else User()

    def upgrade_user(self, user_id: int) -> None:
        with self._lock:
            users = self._load()
            user = users.get(user_id)
            if user is None:
                raise UserNotFoundError(f"invalid user id: {user_id}")
            users[user_id] = user.with_changes(is_chirpy_red=True)
            self._save(users)
        logger.info("Upgraded user id=%s", user_id)

    def store_refresh_token(self, user_id: int, token: str) -> None:
        """Persist ``token`` for ``user_id``; an unknown id is silently ignored."""
        self._set_refresh_token(user_id, token)

    def revoke_refresh_token(self, user_id: int) -> None:
        """Clear the refresh token of ``user_id``; an unknown id is silently ignored."""
        self._set_refresh_token(user_id, "")

    def _set_refresh_token(self, user_id: int, token: str) -> None:
        with self._lock:
            users = self._load()
            user = users.get(user_id)
            if user is not None:
                users[user_id] = user.with_changes(refresh_token=token)
                logger.debug("Refresh token %s for user id=%s", "stored" if token else "revoked", user_id)
            else:
                logger.warning("No user with id=%s, refresh token unchanged", user_id)
            self._save(users)


def open_user_store(settings: Settings | None = None) -> UserStore:
    """Open a new store from settings; callers pass the instance along."""
    settings = settings or get_settings()
    return UserStore.open(settings.users_db_path, atomic_writes=settings.atomic_writes)
