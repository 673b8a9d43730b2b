"""Internal constants for the Tuya Cloud OpenAPI."""

from __future__ import annotations

from pathlib import Path

TOKEN_PATH = "/v1.0/token"
AUTH_PATH = "/v1.0/login/auth"

GRANT_AUTHORIZATION_CODE = 1
GRANT_REFRESH_TOKEN = 2

SIGN_METHOD = "HMAC-SHA256"
LANG = "en"
AUTH_KEY_HEADER = "Security-AuthKey"

# Data-point codes, in lookup order.
SWITCH_CODES = ("switch_1", "switch", "switch_led")
POWER_CODES = ("cur_current", "cur_power")
VOLTAGE_CODE = "cur_voltage"
DEFAULT_COMMAND_CODE = "switch"

DEFAULT_VOLTAGE = 120.0

# Simulated readings are drawn in hundredths so rounding never reaches the upper bound.
SIM_POWER_RANGE = (500, 12500)
SIM_VOLTAGE_RANGE = (11000, 11500)

CRED_DIR = Path.home() / ".config" / "tuyalink"
CRED_FILE = CRED_DIR / "credentials.json"

ENV_CLIENT_ID = "TUYA_CLIENT_ID"
ENV_CLIENT_SECRET = "TUYA_CLIENT_SECRET"
ENV_BASE_URL = "TUYA_REGION_BASE_URL"
ENV_CALLBACK_URL = "TUYA_CALLBACK_URL"
ENV_AUTH_KEY = "TUYA_AUTH_KEY"
ENV_PROJECT_CODE = "TUYA_PROJECT_CODE"
ENV_BACKEND_URL = "BACKEND_URL"
ENV_DEEP_LINK = "TUYA_APP_DEEP_LINK"
