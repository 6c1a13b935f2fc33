"""Core device pairing logic.

Handles device discovery, lockdown sessions, pairing records and the
WiFi sync workflows on top of an abstract ``DeviceTransport``.
"""

from __future__ import annotations

from .errors import (
    AttributeUnavailableError,
    DestinationNotSelectedError,
    DestinationUnwritableError,
    EnumerationUnavailableError,
    IdentityMismatchError,
    InvalidAddressError,
    NoDevicesFoundError,
    PairingRecordNotFoundError,
    PairingToolError,
    PreconditionUnmetError,
    PromptUnavailableError,
    ProtocolError,
    SessionNotReadyError,
    SessionOpenFailedError,
    WrongTransportForPairingError,
)
from .heartbeat import HeartbeatValidator, parse_address
from .orchestrator import Operation, OperationResult, SessionOrchestrator, UserPrompt
from .records import PairingRecordStore
from .registry import DeviceRegistry
from .session import LockdownSession
from .transport import DeviceTransport, MobileDeviceTransport, TransportSession
from .types import (
    DeviceDescriptor,
    HeartbeatOutcome,
    NetworkTransport,
    PairingRecord,
    SessionState,
    UsbTransport,
)

__all__ = [
    "AttributeUnavailableError",
    "DestinationNotSelectedError",
    "DestinationUnwritableError",
    "DeviceDescriptor",
    "DeviceRegistry",
    "DeviceTransport",
    "EnumerationUnavailableError",
    "HeartbeatOutcome",
    "HeartbeatValidator",
    "IdentityMismatchError",
    "InvalidAddressError",
    "LockdownSession",
    "MobileDeviceTransport",
    "NetworkTransport",
    "NoDevicesFoundError",
    "Operation",
    "OperationResult",
    "PairingRecord",
    "PairingRecordNotFoundError",
    "PairingRecordStore",
    "PairingToolError",
    "PreconditionUnmetError",
    "PromptUnavailableError",
    "ProtocolError",
    "SessionNotReadyError",
    "SessionOpenFailedError",
    "SessionOrchestrator",
    "SessionState",
    "TransportSession",
    "UsbTransport",
    "UserPrompt",
    "WrongTransportForPairingError",
    "parse_address",
]
