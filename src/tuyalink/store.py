"""Credential storage for linked Tuya accounts.

:class:`CredentialStore` is the storage contract used by
:class:`~tuyalink.tokens.TokenManager`.  Two implementations ship:

* :class:`MemoryCredentialStore` keeps credentials for the lifetime of the
  process (used by the HTTP backend).
* :class:`FileCredentialStore` persists them to
  ``~/.config/tuyalink/credentials.json`` so the CLI stays linked between
  invocations.
"""

from __future__ import annotations

import dataclasses
import json
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from tuyalink._constants import CRED_FILE
from tuyalink.errors import NotFoundError


@dataclass(frozen=True)
class Credential:
    """OAuth credentials for one linked account.

    All times are UNIX timestamps in seconds.
    """

    uid: str
    access_token: str
    refresh_token: str
    expires_at: float
    created_at: float
    updated_at: float

    def expires_within(self, seconds: float, now: float | None = None) -> bool:
        """True when the access token expires within *seconds* of *now*."""
        if now is None:
            now = time.time()
        return self.expires_at - seconds <= now

    def to_dict(self) -> dict[str, object]:
        return {
            "uid": self.uid,
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Credential:
        return cls(
            uid=str(data["uid"]),
            access_token=str(data["accessToken"]),
            refresh_token=str(data["refreshToken"]),
            expires_at=float(str(data["expiresAt"])),
            created_at=float(str(data.get("createdAt", 0))),
            updated_at=float(str(data.get("updatedAt", 0))),
        )


# Fields a caller may change through update(); identity fields are fixed.
_UPDATABLE = frozenset({"access_token", "refresh_token", "expires_at"})


class CredentialStore(ABC):
    """Keyed store of per-account credentials."""

    @abstractmethod
    def get(self, uid: str) -> Credential | None:
        """Return the credential for *uid*, or ``None``."""

    @abstractmethod
    def set(self, credential: Credential) -> None:
        """Insert or fully replace the credential for ``credential.uid``."""

    @abstractmethod
    def delete(self, uid: str) -> None:
        """Remove the credential for *uid* (no-op if absent)."""

    @abstractmethod
    def list(self) -> list[Credential]:
        """Return every stored credential."""

    def update(self, uid: str, **fields: object) -> Credential:
        """Apply *fields* to the stored credential and return the new value.

        ``uid`` and ``created_at`` are preserved and ``updated_at`` is set to
        the current time.

        Raises:
            NotFoundError: If no credential is stored for *uid*.
            TypeError: If *fields* names something other than the token or
                expiry fields.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise TypeError(f"Cannot update credential fields: {', '.join(sorted(unknown))}")
        previous = self.get(uid)
        if previous is None:
            raise NotFoundError(f"No credential found for uid {uid}")
        updated = dataclasses.replace(previous, **fields, updated_at=time.time())  # type: ignore[arg-type]
        self.set(updated)
        return updated


class MemoryCredentialStore(CredentialStore):
    """Volatile in-process store."""

    def __init__(self) -> None:
        self._items: dict[str, Credential] = {}

    def get(self, uid: str) -> Credential | None:
        return self._items.get(uid)

    def set(self, credential: Credential) -> None:
        self._items[credential.uid] = credential

    def delete(self, uid: str) -> None:
        self._items.pop(uid, None)

    def list(self) -> list[Credential]:
        return list(self._items.values())


class FileCredentialStore(CredentialStore):
    """JSON file store, one object per uid.

    The file is rewritten on every change and kept at mode ``0600``.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CRED_FILE

    @property
    def path(self) -> Path:
        return self._path

    def get(self, uid: str) -> Credential | None:
        return self._load().get(uid)

    def set(self, credential: Credential) -> None:
        items = self._load()
        items[credential.uid] = credential
        self._save(items)

    def delete(self, uid: str) -> None:
        items = self._load()
        if items.pop(uid, None) is not None:
            self._save(items)

    def list(self) -> list[Credential]:
        return list(self._load().values())

    def _load(self) -> dict[str, Credential]:
        if not self._path.exists():
            return {}
        raw = json.loads(self._path.read_text())
        return {uid: Credential.from_dict(data) for uid, data in raw.items()}

    def _save(self, items: dict[str, Credential]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Owner-only from creation; fchmod also tightens a pre-existing file.
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump({uid: cred.to_dict() for uid, cred in items.items()}, f, indent=2)
