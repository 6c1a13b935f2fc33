"""Device discovery and name resolution."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from .errors import NoDevicesFoundError, PairingToolError
from .session import LockdownSession
from .transport import DeviceTransport
from .types import DeviceDescriptor

logger = logging.getLogger(__name__)

NAME_PURPOSE = "pairing_cli"
DEFAULT_WORKERS = 4


class DeviceRegistry:
    """Enumerates reachable devices in discovery order.

    Names are looked up in parallel (bounded by ``max_workers``) but the
    returned list always follows the order the transport reported.
    """

    def __init__(self, transport: DeviceTransport, max_workers: int = DEFAULT_WORKERS):
        self.transport = transport
        self.max_workers = max(1, max_workers)

    def list_devices(self, resolve_names: bool = True) -> list[DeviceDescriptor]:
        entries = self.transport.enumerate()
        if not entries:
            raise NoDevicesFoundError("No devices are connected")

        descriptors = [DeviceDescriptor(identity=identity, transport=t) for identity, t in entries]
        logger.info("Found %d device connection(s)", len(descriptors))
        if not resolve_names:
            return descriptors

        # A device seen over both USB and WiFi gets a single name lookup
        unique: dict[str, DeviceDescriptor] = {}
        for d in descriptors:
            unique.setdefault(d.identity, d)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(unique))) as pool:
            names = dict(zip(unique, pool.map(self.resolve_name, unique.values())))

        return [replace(d, display_name=names[d.identity]) for d in descriptors]

    def resolve_name(self, descriptor: DeviceDescriptor) -> str | None:
        """Return the device name, or None if it cannot be read."""
        try:
            with LockdownSession.open(self.transport, descriptor, NAME_PURPOSE) as session:
                return session.get_name()
        except PairingToolError as e:
            logger.warning("Failed to get device name for %s: %s", descriptor.identity, e.message)
            return None

    def resolve(self, identity: str, resolve_names: bool = True) -> DeviceDescriptor:
        """Find the first descriptor (in discovery order) with this identity."""
        for d in self.list_devices(resolve_names=False):
            if d.identity == identity:
                if resolve_names and d.display_name is None:
                    return replace(d, display_name=self.resolve_name(d))
                return d
        raise NoDevicesFoundError(f"No connected device with UDID {identity}", identity)
