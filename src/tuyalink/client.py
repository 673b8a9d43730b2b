"""Tuya Cloud API client.

Provides programmatic access to devices on linked Tuya accounts.  The
:class:`Client` class is the main entry point::

    import asyncio
    from tuyalink import Client, Config

    client = Client(Config.from_env())
    print(client.build_authorization_url(state="xyz"))

    credential = await client.exchange_authorization_code(code)
    devices = await client.list_devices(credential.uid)

    status = await client.get_status(devices[0].id, credential.uid)
    await client.send_command(devices[0].id, credential.uid, not status.on)
"""

from __future__ import annotations

import math
import random
import time
from typing import Any

import aiohttp
from yarl import URL

from tuyalink._constants import (
    AUTH_PATH,
    DEFAULT_COMMAND_CODE,
    DEFAULT_VOLTAGE,
    LANG,
    POWER_CODES,
    SIM_POWER_RANGE,
    SIM_VOLTAGE_RANGE,
    SWITCH_CODES,
    VOLTAGE_CODE,
)
from tuyalink.config import Config
from tuyalink.errors import AmbiguousAccountError, NoLinkedAccountError
from tuyalink.models import Device, EnergySnapshot, EnergySource, SwitchStatus
from tuyalink.store import Credential, CredentialStore, MemoryCredentialStore
from tuyalink.tokens import TokenManager
from tuyalink.transport import SignedRequestClient


class Client:
    """Tuya Cloud API client.

    Credentials live in *store* (an in-memory store by default); pass a
    :class:`~tuyalink.store.FileCredentialStore` to keep accounts linked
    across processes.  *session* is an optional shared
    :class:`aiohttp.ClientSession`, and *rng* the random source used for
    simulated energy readings.
    """

    def __init__(
        self,
        config: Config,
        *,
        store: CredentialStore | None = None,
        session: aiohttp.ClientSession | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._transport = SignedRequestClient(config, session=session)
        self._tokens = TokenManager(self._transport, store or MemoryCredentialStore())
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, *, store: CredentialStore | None = None) -> Client:
        """Build a client from ``TUYA_*`` environment variables.

        Raises :class:`~tuyalink.errors.ConfigurationError` if a required
        variable is missing.
        """
        return cls(Config.from_env(), store=store)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> Config:
        return self._config

    @property
    def store(self) -> CredentialStore:
        return self._tokens.store

    # ------------------------------------------------------------------
    # Account linking
    # ------------------------------------------------------------------

    def build_authorization_url(self, state: str | None = None) -> str:
        """Return the Tuya login URL that starts the OAuth flow."""
        params = {
            "client_id": self._config.client_id,
            "response_type": "code",
            "redirect_uri": self._config.callback_url,
            "lang": LANG,
            "scope": "all",
        }
        if state:
            params["state"] = state
        return str(URL(self._config.base_url).with_path(AUTH_PATH).with_query(params))

    async def exchange_authorization_code(self, code: str) -> Credential:
        """Complete the OAuth flow and store the new credential."""
        return await self._tokens.exchange_authorization_code(code)

    async def get_valid_access_token(self, uid: str) -> str:
        return await self._tokens.get_valid_access_token(uid)

    def linked_accounts(self) -> list[Credential]:
        return self.store.list()

    def unlink(self, uid: str) -> None:
        self._tokens.unlink(uid)

    def resolve_account(self, requested: str | None = None) -> str:
        """Pick the account to operate on.

        An explicit *requested* id always wins.  Otherwise the single linked
        account is used.

        Raises:
            NoLinkedAccountError: If no account is linked.
            AmbiguousAccountError: If several accounts are linked and none
                was requested.
        """
        if requested:
            return requested
        entries = self.store.list()
        if len(entries) == 1:
            return entries[0].uid
        if not entries:
            raise NoLinkedAccountError(
                "No linked Tuya accounts found. Complete the OAuth flow first."
            )
        raise AmbiguousAccountError(
            "Multiple Tuya accounts linked. Specify the uid to use.",
            detail=[c.uid for c in entries],
        )

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def list_devices(self, uid: str) -> list[Device]:
        """Fetch all devices on the account."""
        result = await self._authed_request(uid, f"/v1.0/users/{uid}/devices")
        return [
            Device(
                id=str(d["id"]),
                name=str(d.get("name", "")),
                category=str(d.get("category", "")),
                online=bool(d.get("online", False)),
                icon=d.get("icon"),
            )
            for d in result or []
        ]

    async def get_status(self, device_id: str, uid: str) -> SwitchStatus:
        """Read the device's switch state.

        The first of ``switch_1``, ``switch`` and ``switch_led`` reported by
        the device decides the state; a device with none of them is off.
        """
        points = await self._fetch_status(device_id, uid)
        datum = next(
            (p for code in SWITCH_CODES for p in points if p.get("code") == code),
            None,
        )
        value = datum.get("value") if datum is not None else None
        return SwitchStatus(on=bool(value if value is not None else False), raw=points)

    async def get_energy(self, device_id: str, uid: str) -> EnergySnapshot:
        """Read power, voltage and current for the device.

        Devices without ``cur_current``/``cur_power`` and ``cur_voltage``
        data points get a simulated snapshot.
        """
        points = await self._fetch_status(device_id, uid)
        power = next((p for p in points if p.get("code") in POWER_CODES), None)
        voltage = next((p for p in points if p.get("code") == VOLTAGE_CODE), None)

        if power is None and voltage is None:
            return self._simulated_energy()

        power_w = _to_number(power.get("value") if power else None, 0.0)
        voltage_v = _to_number(voltage.get("value") if voltage else None, DEFAULT_VOLTAGE)
        current_a = round(power_w / voltage_v, 2) if voltage_v != 0 else 0.0
        return EnergySnapshot(
            power_w=power_w,
            voltage_v=voltage_v,
            current_a=current_a,
            timestamp=_now_ms(),
            source=EnergySource.REAL,
        )

    async def send_command(
        self,
        device_id: str,
        uid: str,
        value: object,
        *,
        code: str | None = None,
    ) -> Any:
        """Send a single data-point command; *code* defaults to ``switch``.

        Returns the upstream ``result`` unchanged.
        """
        body = {"commands": [{"code": code or DEFAULT_COMMAND_CODE, "value": value}]}
        return await self._authed_request(
            uid, f"/v1.0/devices/{device_id}/commands", method="POST", body=body
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _authed_request(
        self, uid: str, path: str, *, method: str = "GET", body: object = None
    ) -> Any:
        access_token = await self._tokens.get_valid_access_token(uid)
        return await self._transport.request(
            path, method=method, body=body, access_token=access_token
        )

    async def _fetch_status(self, device_id: str, uid: str) -> list[dict[str, object]]:
        result = await self._authed_request(uid, f"/v1.0/devices/{device_id}/status")
        return [p for p in result or [] if isinstance(p, dict)]

    def _simulated_energy(self) -> EnergySnapshot:
        power = self._rng.randrange(*SIM_POWER_RANGE) / 100
        voltage = self._rng.randrange(*SIM_VOLTAGE_RANGE) / 100
        return EnergySnapshot(
            power_w=power,
            voltage_v=voltage,
            current_a=round(power / voltage, 2),
            timestamp=_now_ms(),
            source=EnergySource.SIMULATED,
        )


def _to_number(value: object, fallback: float) -> float:
    """Coerce a data-point value to a finite float, else *fallback*."""
    if value is None:
        return fallback
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def _now_ms() -> int:
    return int(time.time() * 1000)
