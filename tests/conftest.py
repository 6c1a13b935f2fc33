from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import pytest

from pairing_cli.core import DeviceDescriptor, NetworkTransport, Operation, SessionOrchestrator, UsbTransport, UserPrompt
from pairing_cli.mock import MockDevice, MockTransport

USB_UDID = "00008110-000A1B2C3D4E801E"
NET_UDID = "00008027-0019384A2E91002E"
DEVICE_IP = "192.168.1.42"


class FakePrompt(UserPrompt):
    def __init__(
        self,
        directory: Optional[Path] = None,
        address: str = DEVICE_IP,
        device_index: int = 0,
        operation: Operation = Operation.EXPORT,
    ) -> None:
        self.directory = directory
        self.address = address
        self.device_index = device_index
        self.operation = operation
        self.calls: list[str] = []

    def choose_device(self, devices: Sequence[DeviceDescriptor]) -> DeviceDescriptor:
        self.calls.append("choose_device")
        return devices[self.device_index]

    def choose_operation(self) -> Operation:
        self.calls.append("choose_operation")
        return self.operation

    def ask_address(self, device: DeviceDescriptor) -> str:
        self.calls.append("ask_address")
        return self.address

    def choose_directory(self, record_name: str) -> Optional[Path]:
        self.calls.append("choose_directory")
        return self.directory


@pytest.fixture
def usb_mock_device() -> MockDevice:
    return MockDevice(identity=USB_UDID, name="Test iPhone", network_address=DEVICE_IP)


@pytest.fixture
def net_mock_device() -> MockDevice:
    return MockDevice(identity=NET_UDID, transport=NetworkTransport(), name="Test iPad")


@pytest.fixture
def transport(usb_mock_device: MockDevice, net_mock_device: MockDevice) -> MockTransport:
    return MockTransport([usb_mock_device, net_mock_device])


@pytest.fixture
def usb_device() -> DeviceDescriptor:
    return DeviceDescriptor(identity=USB_UDID, transport=UsbTransport(), display_name="Test iPhone")


@pytest.fixture
def net_device() -> DeviceDescriptor:
    return DeviceDescriptor(identity=NET_UDID, transport=NetworkTransport(), display_name="Test iPad")


@pytest.fixture
def prompt(tmp_path: Path) -> FakePrompt:
    return FakePrompt(directory=tmp_path / "export")


@pytest.fixture
def orchestrator(transport: MockTransport, prompt: FakePrompt) -> SessionOrchestrator:
    return SessionOrchestrator(transport, prompt=prompt)
