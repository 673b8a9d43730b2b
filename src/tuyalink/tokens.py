"""Access/refresh token lifecycle for linked Tuya accounts."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from tuyalink._constants import GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN, TOKEN_PATH
from tuyalink.errors import ApiError, NetworkError, NotFoundError
from tuyalink.store import Credential, CredentialStore
from tuyalink.transport import SignedRequestClient

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_BUFFER = 60  # seconds before expiry to trigger proactive refresh


class TokenManager:
    """Hands out valid access tokens, refreshing them when close to expiry.

    Refreshes are serialized per account.  If a refresh fails (typically
    because a concurrent writer already rotated the refresh token) the
    credential is re-read from the store and the refresh retried once.
    """

    def __init__(self, transport: SignedRequestClient, store: CredentialStore) -> None:
        self._transport = transport
        self._store = store
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def exchange_authorization_code(self, code: str) -> Credential:
        """Trade an OAuth authorization code for a new stored credential."""
        result = await self._transport.request(
            TOKEN_PATH,
            method="POST",
            query={"grant_type": GRANT_AUTHORIZATION_CODE},
            body={"code": code, "redirect_uri": self._transport.config.callback_url},
        )
        now = time.time()
        credential = Credential(
            uid=str(result["uid"]),
            access_token=str(result["access_token"]),
            refresh_token=str(result["refresh_token"]),
            expires_at=now + _expire_seconds(result),
            created_at=now,
            updated_at=now,
        )
        self._store.set(credential)
        logger.info("Linked Tuya account %s", credential.uid)
        return credential

    async def get_valid_access_token(self, uid: str) -> str:
        """Return an access token for *uid* that is not about to expire.

        Raises:
            NotFoundError: If the account has no stored credential.
        """
        credential = self._require(uid)
        if not credential.expires_within(TOKEN_EXPIRY_BUFFER):
            return credential.access_token

        async with self._lock_for(uid):
            # Another task may have refreshed while we were waiting.
            credential = self._require(uid)
            if not credential.expires_within(TOKEN_EXPIRY_BUFFER):
                return credential.access_token

            try:
                return await self._refresh(credential)
            except (ApiError, NetworkError) as e:
                logger.warning("Token refresh for %s failed (%s), retrying once", uid, e.message)
                credential = self._require(uid)
                if not credential.expires_within(TOKEN_EXPIRY_BUFFER):
                    return credential.access_token
                return await self._refresh(credential)

    def unlink(self, uid: str) -> None:
        """Forget the stored credential for *uid*."""
        self._store.delete(uid)
        self._locks.pop(uid, None)
        logger.info("Unlinked Tuya account %s", uid)

    async def _refresh(self, credential: Credential) -> str:
        logger.info("Refreshing access token for %s", credential.uid)
        # The refresh endpoint is keyed by the refresh token, so it is signed without an access token.
        result = await self._transport.request(
            f"{TOKEN_PATH}/{credential.refresh_token}",
            query={"grant_type": GRANT_REFRESH_TOKEN},
        )
        updated = self._store.update(
            credential.uid,
            access_token=str(result["access_token"]),
            refresh_token=str(result["refresh_token"]),
            expires_at=time.time() + _expire_seconds(result),
        )
        return updated.access_token

    def _require(self, uid: str) -> Credential:
        credential = self._store.get(uid)
        if credential is None:
            raise NotFoundError(f"No stored credentials for uid {uid}")
        return credential

    def _lock_for(self, uid: str) -> asyncio.Lock:
        lock = self._locks.get(uid)
        if lock is None:
            lock = self._locks[uid] = asyncio.Lock()
        return lock


def _expire_seconds(result: dict[str, Any]) -> float:
    """Token lifetime in seconds from a token response's ``expire_time``."""
    return float(result.get("expire_time") or 0)
