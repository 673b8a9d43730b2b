"""HTTP backend for the mobile app.

Thin aiohttp handlers over :class:`tuyalink.Client`.  The account is taken
from the ``uid`` query parameter or the ``x-tuya-uid`` header, falling back
to the only linked account.
"""

from __future__ import annotations

import functools
import html
import json
import logging
from collections.abc import Awaitable, Callable

from aiohttp import web
from yarl import URL

from tuyalink.client import Client
from tuyalink.errors import TuyaError
from tuyalink.models import EnergySource

logger = logging.getLogger(__name__)

CLIENT_KEY = web.AppKey("client", Client)

SIMULATED_NOTE = "This device does not expose real-time energy metrics. Values are simulated."

# Values of the x-tuya-energy-source header the mobile app understands.
ENERGY_SOURCE_HEADER_VALUES = {
    EnergySource.REAL: "tuya",
    EnergySource.SIMULATED: "mock",
}

_CONNECTED_PAGE = """\
<!doctype html>
<html>
  <head><title>Tuya account linked</title></head>
  <body>
    <h1>Tuya account linked</h1>
    <p>Your Tuya account is now connected. You can close this page and return to the app.</p>
    <section>
      <p><strong>UID:</strong> {uid}</p>{state}
    </section>
    <p>Need to trigger the flow again? <a href="/api/tuya/login">Start a new Tuya login</a>.</p>
  </body>
</html>
"""

_STATE_LINE = "\n      <p><strong>State:</strong> {state}</p>"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _api_errors(failure: str) -> Callable[[Handler], Handler]:
    """Map :class:`TuyaError` to 400 and anything unexpected to 500."""

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            try:
                return await handler(request)
            except web.HTTPException:
                raise
            except TuyaError as e:
                return web.json_response({"error": e.message, "detail": e.detail}, status=400)
            except Exception:
                logger.exception("Unhandled error on %s", request.path)
                return web.json_response({"error": failure}, status=500)

        return wrapper

    return decorator


def _client(request: web.Request) -> Client:
    return request.app[CLIENT_KEY]


def _resolve_uid(request: web.Request) -> str:
    requested = request.query.get("uid") or request.headers.get("x-tuya-uid")
    return _client(request).resolve_account(requested)


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


async def login(request: web.Request) -> web.StreamResponse:
    url = _client(request).build_authorization_url(request.query.get("state"))
    raise web.HTTPFound(url)


async def auth_callback(request: web.Request) -> web.StreamResponse:
    client = _client(request)
    code = request.query.get("code")
    state = request.query.get("state")
    if not code:
        return web.json_response({"error": "Missing authorization code"}, status=400)

    try:
        credential = await client.exchange_authorization_code(code)
    except Exception:
        logger.exception("Authorization code exchange failed")
        return web.json_response(
            {"error": "Unable to exchange Tuya authorization code"}, status=500
        )

    params = {"uid": credential.uid}
    if state:
        params["state"] = state

    config = client.config
    if config.deep_link_url:
        target = URL(config.deep_link_url).update_query(params)
    else:
        base = URL(config.backend_url) if config.backend_url else request.url.origin()
        target = base.with_path("/connected").with_query(params)
    raise web.HTTPFound(str(target))


async def connected(request: web.Request) -> web.StreamResponse:
    uid = request.query.get("uid")
    state = request.query.get("state")
    page = _CONNECTED_PAGE.format(
        uid=html.escape(uid) if uid else "not provided",
        state=_STATE_LINE.format(state=html.escape(state)) if state else "",
    )
    return web.Response(text=page, content_type="text/html")


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


@_api_errors("Unexpected error while fetching Tuya devices")
async def devices(request: web.Request) -> web.StreamResponse:
    uid = _resolve_uid(request)
    found = await _client(request).list_devices(uid)
    return web.json_response({"uid": uid, "devices": [d.to_dict() for d in found]})


@_api_errors("Unexpected error while fetching device status")
async def status(request: web.Request) -> web.StreamResponse:
    device_id = request.match_info["device_id"]
    uid = _resolve_uid(request)
    result = await _client(request).get_status(device_id, uid)
    return web.json_response({"uid": uid, "deviceId": device_id, "status": result.to_dict()})


@_api_errors("Unexpected error while fetching device energy usage")
async def energy(request: web.Request) -> web.StreamResponse:
    device_id = request.match_info["device_id"]
    uid = _resolve_uid(request)
    snapshot = await _client(request).get_energy(device_id, uid)

    response = web.json_response(
        {"uid": uid, "deviceId": device_id, "energy": snapshot.to_dict()}
    )
    response.headers["x-tuya-energy-source"] = ENERGY_SOURCE_HEADER_VALUES[snapshot.source]
    if snapshot.simulated:
        response.headers["x-tuya-energy-note"] = SIMULATED_NOTE
    return response


@_api_errors("Unexpected error while forwarding command to Tuya")
async def command(request: web.Request) -> web.StreamResponse:
    device_id = request.match_info["device_id"]
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON payload"}, status=400)
    if not isinstance(body, dict):
        return web.json_response({"error": "Invalid JSON payload"}, status=400)

    uid = _resolve_uid(request)
    value = body.get("value")
    if value is None:
        value = {"on": True, "off": False}.get(str(body.get("switch")))
    if value is None:
        return web.json_response(
            {"error": "Provide either switch ('on' | 'off') or value in the payload."},
            status=400,
        )

    await _client(request).send_command(device_id, uid, value, code=body.get("code"))
    return web.json_response({"ok": True})


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(client: Client) -> web.Application:
    """Build the aiohttp application serving *client*."""
    app = web.Application()
    app[CLIENT_KEY] = client
    app.add_routes(
        [
            web.get("/api/tuya/login", login),
            web.get("/api/tuya/auth/callback", auth_callback),
            web.get("/connected", connected),
            web.get("/api/tuya/devices", devices),
            web.get("/api/tuya/status/{device_id}", status),
            web.get("/api/tuya/energy/{device_id}", energy),
            web.post("/api/tuya/command/{device_id}", command),
        ]
    )
    return app


def run(client: Client, *, host: str = "127.0.0.1", port: int = 3000) -> None:
    """Serve the backend until interrupted."""
    logger.info("Serving Tuya backend on http://%s:%d", host, port)
    web.run_app(create_app(client), host=host, port=port)
