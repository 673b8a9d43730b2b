"""Python API, CLI and backend for linking Tuya cloud accounts and controlling their devices."""

from tuyalink.client import Client
from tuyalink.config import Config
from tuyalink.errors import (
    AmbiguousAccountError,
    ApiError,
    ConfigurationError,
    ErrorKind,
    NetworkError,
    NoLinkedAccountError,
    NotFoundError,
    TuyaError,
)
from tuyalink.models import Device, EnergySnapshot, EnergySource, SwitchStatus
from tuyalink.store import Credential, CredentialStore, FileCredentialStore, MemoryCredentialStore

__all__ = [
    "AmbiguousAccountError",
    "ApiError",
    "Client",
    "Config",
    "ConfigurationError",
    "Credential",
    "CredentialStore",
    "Device",
    "EnergySnapshot",
    "EnergySource",
    "ErrorKind",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "NetworkError",
    "NoLinkedAccountError",
    "NotFoundError",
    "SwitchStatus",
    "TuyaError",
]
