"""Top-level pairing workflows: export, test WiFi sync, enable WiFi sync, regenerate.

Every workflow raises a ``PairingToolError`` subclass on failure and returns an
``OperationResult`` on success. Deciding whether to exit is left to the caller.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from .errors import DestinationNotSelectedError, PromptUnavailableError, WrongTransportForPairingError
from .heartbeat import HeartbeatValidator, parse_address
from .records import PairingRecordStore
from .registry import DEFAULT_WORKERS, DeviceRegistry
from .session import LockdownSession
from .transport import DeviceTransport
from .types import DeviceDescriptor

logger = logging.getLogger(__name__)

WIFI_DOMAIN = "com.apple.mobile.wireless_lockdown"
WIFI_KEY = "EnableWifiDebugging"
WIFI_PURPOSE = "pairing_cli_wifi_on"
PAIRING_PURPOSE = "pairing_cli_gen"


class Operation(Enum):
    EXPORT = "export"
    TEST_WIFI = "test-wifi"
    ENABLE_WIFI = "enable-wifi"
    REGENERATE = "regenerate"

    @property
    def title(self) -> str:
        return {
            Operation.EXPORT: "Export current pairing file",
            Operation.TEST_WIFI: "Test current pairing file for WiFi sync",
            Operation.ENABLE_WIFI: "Turn on WiFi sync",
            Operation.REGENERATE: "Generate a new pairing file",
        }[self]


@dataclass
class OperationResult:
    operation: Operation
    identity: str
    status: str
    message: str
    details: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict:
        return {
            "action": self.operation.value,
            "udid": self.identity,
            "status": self.status,
            "message": self.message,
            **self.details,
        }


class UserPrompt(ABC):
    """Interactive choices the workflows may need from the operator."""

    @abstractmethod
    def choose_device(self, devices: Sequence[DeviceDescriptor]) -> DeviceDescriptor: ...

    @abstractmethod
    def choose_operation(self) -> Operation: ...

    @abstractmethod
    def ask_address(self, device: DeviceDescriptor) -> str: ...

    @abstractmethod
    def choose_directory(self, record_name: str) -> Optional[Path]:
        """Return the folder to save into, or None if the operator cancelled."""


class SessionOrchestrator:
    """Ties the registry, sessions, record store and heartbeat together."""

    def __init__(
        self,
        transport: DeviceTransport,
        prompt: UserPrompt | None = None,
        max_workers: int = DEFAULT_WORKERS,
    ):
        self.transport = transport
        self.prompt = prompt
        self.registry = DeviceRegistry(transport, max_workers=max_workers)
        self.store = PairingRecordStore(transport)
        self.validator = HeartbeatValidator(transport, self.store)
        self._pairing_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Device selection
    # ------------------------------------------------------------------

    def discover(self) -> list[DeviceDescriptor]:
        logger.info("Looking up connected devices")
        return self.registry.list_devices()

    def select_device(self, udid: str | None = None) -> DeviceDescriptor:
        if udid:
            return self.registry.resolve(udid)
        devices = self.discover()
        if len(devices) == 1:
            return devices[0]
        return self._require_prompt().choose_device(devices)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def run(self, operation: Operation, device: DeviceDescriptor, **kwargs) -> OperationResult:
        handlers = {
            Operation.EXPORT: self.export_pairing_file,
            Operation.TEST_WIFI: self.test_wifi_sync,
            Operation.ENABLE_WIFI: self.enable_wifi_sync,
            Operation.REGENERATE: self.regenerate_pairing,
        }
        return handlers[operation](device, **kwargs)

    def export_pairing_file(self, device: DeviceDescriptor, destination: str | Path | None = None) -> OperationResult:
        record = self.store.read(device.identity)
        if destination is None:
            destination = self._choose_destination(record.filename, device.identity)
        path = self.store.export(record, destination, identity=device.identity)
        return OperationResult(
            Operation.EXPORT,
            device.identity,
            "ok",
            f"Exported \"{record.filename}\" to {path.parent}",
            {"path": str(path)},
        )

    def test_wifi_sync(self, device: DeviceDescriptor, address: str | None = None) -> OperationResult:
        if not device.is_network:
            if address is None:
                address = self._require_prompt(device.identity).ask_address(device)
            address = parse_address(address, device.identity)

        outcome = self.validator.validate(device, address)
        details = {"reachable": outcome.reachable, "verified": outcome.verified}
        if address:
            details["ip"] = address
        if outcome.reachable:
            message = "Test succeeded" if outcome.verified else "Test succeeded (device is already on the network)"
            return OperationResult(Operation.TEST_WIFI, device.identity, "ok", message, details)
        return OperationResult(Operation.TEST_WIFI, device.identity, "failed", f"Test failed: {outcome.reason}", details)

    def enable_wifi_sync(self, device: DeviceDescriptor) -> OperationResult:
        with LockdownSession.open(self.transport, device, WIFI_PURPOSE) as session:
            session.set_value(WIFI_DOMAIN, WIFI_KEY, True)
        logger.info("Enabled %s/%s on %s", WIFI_DOMAIN, WIFI_KEY, device.identity)
        return OperationResult(Operation.ENABLE_WIFI, device.identity, "ok", "WiFi sync enabled")

    def regenerate_pairing(self, device: DeviceDescriptor, destination: str | Path | None = None) -> OperationResult:
        if device.is_network:
            raise WrongTransportForPairingError("Device must be plugged into USB", device.identity)

        with self._pairing_lock(device.identity):
            with LockdownSession.open(self.transport, device, PAIRING_PURPOSE) as session:
                record = session.request_pairing()
        logger.info("Pairing succeeded for %s", device.identity)

        if destination is None:
            destination = self._choose_destination(record.filename, device.identity)
        path = self.store.export(record, destination, identity=device.identity)
        return OperationResult(
            Operation.REGENERATE,
            device.identity,
            "ok",
            f"Pairing succeeded. Exported \"{record.filename}\" to {path.parent}",
            {"path": str(path)},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_prompt(self, identity: str | None = None) -> UserPrompt:
        if self.prompt is None:
            raise PromptUnavailableError("an interactive prompt is required for this step", identity)
        return self.prompt

    def _choose_destination(self, record_name: str, identity: str) -> Path:
        folder = self._require_prompt(identity).choose_directory(record_name)
        if folder is None:
            raise DestinationNotSelectedError("No path specified", identity)
        return folder

    def _pairing_lock(self, identity: str) -> threading.Lock:
        with self._locks_guard:
            return self._pairing_locks.setdefault(identity, threading.Lock())
