"""Dataclasses shared by the device, session and pairing-record layers."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Union


LOCKDOWN_PORT = 62078
PAIRING_RECORD_EXTENSION = "plist"


def to_dict(obj) -> dict:
    """Convert a dataclass to a dict, dropping None values."""
    d = asdict(obj)
    return {k: v for k, v in d.items() if v is not None}


# ------------------------------------------------------------------
# Transports
# ------------------------------------------------------------------

@dataclass(frozen=True)
class UsbTransport:
    """Wired connection through usbmuxd."""

    kind = "usb"

    def to_dict(self) -> dict:
        return {"kind": self.kind}


@dataclass(frozen=True)
class NetworkTransport:
    """Network connection. ``address`` is None when usbmuxd found the device over WiFi."""

    address: str | None = None
    port: int = LOCKDOWN_PORT

    kind = "network"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **to_dict(self)}


Transport = Union[UsbTransport, NetworkTransport]


# ------------------------------------------------------------------
# Devices
# ------------------------------------------------------------------

@dataclass(frozen=True)
class DeviceDescriptor:
    """Identity and discovery transport of one device."""

    identity: str
    transport: Transport
    display_name: str | None = None

    @property
    def is_network(self) -> bool:
        return isinstance(self.transport, NetworkTransport)

    @property
    def label(self) -> str:
        glyph = "📶" if self.is_network else "🔌"
        return f"{glyph} {self.display_name or self.identity}"

    def to_dict(self) -> dict:
        return {
            "udid": self.identity,
            "name": self.display_name,
            "connection_type": self.transport.kind,
            "transport": self.transport.to_dict(),
        }


# ------------------------------------------------------------------
# Pairing records
# ------------------------------------------------------------------

@dataclass(frozen=True)
class PairingRecord:
    """Opaque host credential for one device. The payload is never interpreted."""

    owner_identity: str
    payload: bytes

    @property
    def filename(self) -> str:
        return f"{self.owner_identity}.{PAIRING_RECORD_EXTENSION}"

    def __repr__(self) -> str:
        return f"PairingRecord(owner_identity={self.owner_identity!r}, size={len(self.payload)})"


# ------------------------------------------------------------------
# Sessions and heartbeats
# ------------------------------------------------------------------

class SessionState(Enum):
    OPENING = "opening"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


@dataclass(frozen=True)
class HeartbeatOutcome:
    reachable: bool
    reason: str | None = None
    verified: bool = True  # False when reachability was inferred from network discovery

    @classmethod
    def ok(cls, verified: bool = True, reason: str | None = None) -> HeartbeatOutcome:
        return cls(reachable=True, reason=reason, verified=verified)

    @classmethod
    def unreachable(cls, reason: str) -> HeartbeatOutcome:
        return cls(reachable=False, reason=reason, verified=True)
