"""Signed HTTP transport for the Tuya Cloud OpenAPI.

Every request is authenticated with Tuya's HMAC-SHA256 scheme::

    content_hash   = sha256_hex(body)
    string_to_sign = METHOD "\\n" content_hash "\\n" "" "\\n" path?query
    sign           = HMAC_SHA256(secret, client_id + access_token + t + nonce + string_to_sign)

The concatenation has no delimiters and the middle slot (signed headers) is
always empty.  A single character of difference invalidates the signature.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import aiohttp

from tuyalink._constants import AUTH_KEY_HEADER, LANG, SIGN_METHOD, TOKEN_PATH
from tuyalink._crypto import hmac_sha256_upper, new_nonce, sha256_hex
from tuyalink.config import Config
from tuyalink.errors import ApiError, NetworkError

logger = logging.getLogger(__name__)

QueryValue = str | int | float | bool | None

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=15)


def build_query_string(query: Mapping[str, QueryValue] | None) -> str:
    """Encode *query* as ``?k=v&...``, skipping ``None`` values.

    Returns an empty string when nothing is left to encode.
    """
    if not query:
        return ""
    params = [(key, _format_query_value(value)) for key, value in query.items() if value is not None]
    if not params:
        return ""
    return "?" + urlencode(params)


def _format_query_value(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_body(body: object) -> str:
    """Compact JSON for a request body; ``None`` serializes to ``""``."""
    if body is None:
        return ""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def string_to_sign(method: str, body: str, path_with_query: str) -> str:
    return "\n".join([method.upper(), sha256_hex(body), "", path_with_query])


def sign_request(
    *,
    client_id: str,
    client_secret: str,
    method: str,
    path_with_query: str,
    body: str,
    timestamp: str,
    nonce: str,
    access_token: str | None = None,
) -> str:
    """Compute the ``sign`` header value for one request."""
    payload = (
        f"{client_id}{access_token or ''}{timestamp}{nonce}"
        f"{string_to_sign(method, body, path_with_query)}"
    )
    return hmac_sha256_upper(payload, client_secret)


class SignedRequestClient:
    """Issues signed requests and unwraps Tuya's response envelope.

    If *session* is given it is reused for every request (the caller owns
    it); otherwise each request opens a short-lived session.
    """

    def __init__(
        self,
        config: Config,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: aiohttp.ClientTimeout = _DEFAULT_TIMEOUT,
    ) -> None:
        self._config = config
        self._session = session
        self._timeout = timeout

    @property
    def config(self) -> Config:
        return self._config

    def signed_headers(
        self,
        method: str,
        path_with_query: str,
        body: str,
        access_token: str | None = None,
        *,
        timestamp: str | None = None,
        nonce: str | None = None,
    ) -> dict[str, str]:
        """Build the full header set for a request."""
        timestamp = timestamp or str(int(time.time() * 1000))
        nonce = nonce or new_nonce()
        headers = {
            "Content-Type": "application/json",
            "client_id": self._config.client_id,
            "sign": sign_request(
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                method=method,
                path_with_query=path_with_query,
                body=body,
                timestamp=timestamp,
                nonce=nonce,
                access_token=access_token,
            ),
            "sign_method": SIGN_METHOD,
            "t": timestamp,
            "nonce": nonce,
            "lang": LANG,
        }
        if access_token:
            headers["access_token"] = access_token
        if self._config.auth_key:
            headers[AUTH_KEY_HEADER] = self._config.auth_key
        return headers

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        query: Mapping[str, QueryValue] | None = None,
        body: object = None,
        access_token: str | None = None,
    ) -> Any:
        """Send one signed request and return the envelope's ``result``.

        Raises:
            NetworkError: On a non-2xx HTTP status.
            ApiError: When the envelope reports ``success: false`` or the
                body is not a JSON envelope.
        """
        method = method.upper()
        path_with_query = f"{path}{build_query_string(query)}"
        body_str = serialize_body(body)
        headers = self.signed_headers(method, path_with_query, body_str, access_token)
        url = f"{self._config.base_url}{path_with_query}"

        logger.debug("Tuya request %s %s", method, _redact(path))
        if self._session is not None:
            status, text = await self._send(self._session, method, url, headers, body_str)
        else:
            async with aiohttp.ClientSession() as session:
                status, text = await self._send(session, method, url, headers, body_str)

        if not 200 <= status < 300:
            raise NetworkError(status, text)
        return _unwrap(text)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str,
    ) -> tuple[int, str]:
        async with session.request(
            method,
            url,
            headers=headers,
            data=body.encode("utf-8") if body else None,
            timeout=self._timeout,
        ) as resp:
            return resp.status, await resp.text()


def _unwrap(text: str) -> Any:
    """Return ``result`` from a Tuya envelope, raising :class:`ApiError` on failure."""
    try:
        envelope = json.loads(text)
    except json.JSONDecodeError:
        raise ApiError("Malformed Tuya API response", detail=text) from None
    if not isinstance(envelope, dict):
        raise ApiError("Malformed Tuya API response", detail=envelope)
    if not envelope.get("success"):
        code = envelope.get("code")
        raise ApiError(
            str(envelope.get("msg") or "Tuya API error"),
            code=code if isinstance(code, int) else None,
            detail=envelope,
        )
    return envelope.get("result")


def _redact(path: str) -> str:
    """Hide the refresh token embedded in the refresh endpoint's path."""
    if path.startswith(f"{TOKEN_PATH}/"):
        return f"{TOKEN_PATH}/***"
    return path
