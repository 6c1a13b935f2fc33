"""In-memory device transport with sample devices.

Behaves like usbmuxd + lockdownd closely enough to drive every workflow
without hardware. Pairing records it generates are marked with
``"Mock": True`` so they cannot be confused with real credentials.

Usage:
    pairing-cli --mock devices
    PAIRING_MOCK=1 pairing-cli
"""

from __future__ import annotations

import plistlib
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

from ..core.errors import (
    AttributeUnavailableError,
    EnumerationUnavailableError,
    PreconditionUnmetError,
    ProtocolError,
    SessionOpenFailedError,
)
from ..core.transport import DeviceTransport, TransportSession
from ..core.types import NetworkTransport, Transport, UsbTransport


@dataclass
class MockDevice:
    identity: str
    transport: Transport = field(default_factory=UsbTransport)
    name: str | None = "iPhone"
    passcode_set: bool = True
    reachable: bool = True
    network_address: str | None = None  # answers heartbeats at this IP once paired
    values: dict = field(default_factory=dict)


def _record_payload(identity: str) -> bytes:
    host_id = str(uuid.uuid4()).upper()
    return plistlib.dumps({
        "DeviceCertificate": b"mock-device-certificate",
        "HostCertificate": b"mock-host-certificate",
        "HostID": host_id,
        "HostPrivateKey": b"mock-host-private-key",
        "SystemBUID": str(uuid.uuid5(uuid.NAMESPACE_OID, identity)).upper(),
        "UDID": identity,
        "WiFiMACAddress": "00:00:00:00:00:00",
        "Mock": True,
    })


def sample_devices() -> list[MockDevice]:
    return [
        MockDevice(
            identity="00008110-000A1B2C3D4E801E",
            name="Mock iPhone",
            network_address="192.168.1.42",
        ),
        MockDevice(
            identity="00008027-0019384A2E91002E",
            transport=NetworkTransport(),
            name="Mock iPad",
        ),
    ]


class MockSession(TransportSession):
    def __init__(self, owner: MockTransport, device: MockDevice, transport: Transport, purpose: str):
        self.owner = owner
        self.device = device
        self.transport = transport
        self.purpose = purpose
        self.closed = False

    def _log(self, call: str, *args):
        self.owner.calls.append((call, self.device.identity) + args)

    def get_name(self) -> str:
        self._log("get_name")
        if not self.device.name:
            raise AttributeUnavailableError("device declined DeviceName", self.device.identity)
        return self.device.name

    def set_value(self, domain: str, key: str, value: Any) -> None:
        self._log("set_value", domain, key, value)
        if not self.device.passcode_set:
            raise PreconditionUnmetError("device must have a passcode set", self.device.identity)
        self.device.values[(domain, key)] = value

    def pair(self) -> None:
        self._log("pair")
        if not self.device.reachable:
            raise ProtocolError("pairing failed: device disconnected", self.device.identity)
        with self.owner.lock:
            self.owner.records[self.device.identity] = _record_payload(self.device.identity)

    def heartbeat(self) -> None:
        self._log("heartbeat")
        if self.device.identity not in self.owner.records:
            raise PreconditionUnmetError("pairing record was not accepted by the device", self.device.identity)

    def close(self) -> None:
        self._log("close")
        self.closed = True


class MockTransport(DeviceTransport):
    """Transport backed by a list of ``MockDevice``. Every call is recorded in ``calls``."""

    def __init__(
        self,
        devices: list[MockDevice] | None = None,
        records: dict[str, bytes] | None = None,
        available: bool = True,
    ):
        self.devices = sample_devices() if devices is None else devices
        self.records: dict[str, bytes] = dict(records or {})
        self.available = available
        self.calls: list[tuple] = []
        self.sessions: list[MockSession] = []
        self.lock = threading.Lock()

    @classmethod
    def with_samples(cls) -> MockTransport:
        devices = sample_devices()
        return cls(devices, records={devices[0].identity: _record_payload(devices[0].identity)})

    def _find(self, identity: str) -> MockDevice | None:
        for d in self.devices:
            if d.identity == identity:
                return d
        return None

    def enumerate(self) -> list[tuple[str, Transport]]:
        self.calls.append(("enumerate",))
        if not self.available:
            raise EnumerationUnavailableError("Unable to look up devices. Make sure usbmuxd is running.")
        return [(d.identity, d.transport) for d in self.devices]

    def open_session(self, identity: str, transport: Transport, purpose: str) -> TransportSession:
        self.calls.append(("open_session", identity, purpose))
        device = self._find(identity)
        if device is None or not device.reachable:
            raise SessionOpenFailedError("device is not reachable", identity)
        if isinstance(transport, NetworkTransport) and transport.address:
            if transport.address != device.network_address:
                raise SessionOpenFailedError(f"no device answering at {transport.address}", identity)
        session = MockSession(self, device, transport, purpose)
        with self.lock:
            self.sessions.append(session)
        return session

    def read_pairing_record(self, identity: str) -> bytes | None:
        self.calls.append(("read_pairing_record", identity))
        return self.records.get(identity)
