"""WiFi sync reachability check."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import replace

from .errors import InvalidAddressError, PairingRecordNotFoundError, PairingToolError
from .records import PairingRecordStore
from .session import LockdownSession
from .transport import DeviceTransport
from .types import LOCKDOWN_PORT, DeviceDescriptor, HeartbeatOutcome, NetworkTransport

logger = logging.getLogger(__name__)

HEARTBEAT_PURPOSE = "pairing_cli_test"


def parse_address(address: str | None, identity: str | None = None) -> str:
    """Validate an IPv4/IPv6 address and return it in canonical form."""
    try:
        return str(ipaddress.ip_address((address or "").strip()))
    except ValueError:
        raise InvalidAddressError(f"Invalid IP address: {address!r}", identity)


class HeartbeatValidator:
    """Checks that a device answers a heartbeat over the network with its pairing record.

    The result is advisory: an unreachable device leaves the stored record
    untouched.
    """

    def __init__(self, transport: DeviceTransport, store: PairingRecordStore | None = None, port: int = LOCKDOWN_PORT):
        self.transport = transport
        self.store = store or PairingRecordStore(transport)
        self.port = port

    def validate(self, device: DeviceDescriptor, network_address: str | None = None) -> HeartbeatOutcome:
        if device.is_network:
            logger.info(
                "%s was discovered over the network; skipping the heartbeat (not actively verified)",
                device.identity,
            )
            return HeartbeatOutcome.ok(verified=False, reason="device discovered over the network")

        address = parse_address(network_address, device.identity)

        try:
            self.store.read(device.identity)
        except PairingRecordNotFoundError as e:
            return HeartbeatOutcome.unreachable(e.message)

        target = replace(device, transport=NetworkTransport(address=address, port=self.port))
        try:
            with LockdownSession.open(self.transport, target, HEARTBEAT_PURPOSE) as session:
                session.heartbeat()
        except PairingToolError as e:
            logger.warning("Heartbeat to %s at %s failed: %s", device.identity, address, e.message)
            return HeartbeatOutcome.unreachable(e.message)

        logger.info("Heartbeat to %s at %s succeeded", device.identity, address)
        return HeartbeatOutcome.ok()
