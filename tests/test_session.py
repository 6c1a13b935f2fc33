"""Tests for the lockdown session state machine."""

from __future__ import annotations

import plistlib

import pytest

from conftest import USB_UDID
from pairing_cli.core import (
    AttributeUnavailableError,
    DeviceDescriptor,
    LockdownSession,
    NetworkTransport,
    PreconditionUnmetError,
    ProtocolError,
    SessionNotReadyError,
    SessionOpenFailedError,
    SessionState,
    WrongTransportForPairingError,
)
from pairing_cli.mock import MockDevice, MockTransport


def _calls(transport: MockTransport, name: str) -> list[tuple]:
    return [c for c in transport.calls if c[0] == name]


class TestLifecycle:
    def test_open_moves_to_ready(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        session = LockdownSession.open(transport, usb_device, "purpose")
        assert session.state is SessionState.READY
        assert _calls(transport, "open_session") == [("open_session", USB_UDID, "purpose")]

    def test_open_failure_marks_failed(self, usb_device: DeviceDescriptor) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID, reachable=False)])
        session = LockdownSession(transport, usb_device, "purpose")

        with pytest.raises(SessionOpenFailedError):
            session._connect()

        assert session.state is SessionState.FAILED
        assert session.failure_reason

    def test_close_is_idempotent(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        session = LockdownSession.open(transport, usb_device, "purpose")
        session.close()
        session.close()

        assert session.state is SessionState.CLOSED
        assert len(_calls(transport, "close")) == 1

    def test_context_manager_closes_on_error(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        with pytest.raises(RuntimeError):
            with LockdownSession.open(transport, usb_device, "purpose") as session:
                raise RuntimeError("boom")

        assert session.state is SessionState.CLOSED
        assert transport.sessions[0].closed

    def test_operations_require_ready(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        session = LockdownSession.open(transport, usb_device, "purpose")
        session.close()

        with pytest.raises(SessionNotReadyError):
            session.get_name()
        with pytest.raises(SessionNotReadyError):
            session.set_value("domain", "key", True)

    def test_protocol_error_fails_session(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        handle = _BrokenHandle()
        session = LockdownSession(transport, usb_device, "purpose")
        session.state = SessionState.READY
        session._handle = handle

        with pytest.raises(ProtocolError):
            session.heartbeat()

        assert session.state is SessionState.FAILED
        session.close()
        assert session.state is SessionState.FAILED
        assert handle.closed

    def test_socket_error_fails_session(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        session = LockdownSession(transport, usb_device, "purpose")
        session.state = SessionState.READY
        session._handle = _ResetHandle()

        with pytest.raises(ProtocolError) as exc:
            session.get_name()

        assert isinstance(exc.value.__cause__, ConnectionResetError)
        assert session.state is SessionState.FAILED
        assert session.failure_reason

    def test_socket_error_while_opening(self, usb_device: DeviceDescriptor) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID)])
        transport.open_session = _raise(ConnectionRefusedError("refused"))
        session = LockdownSession(transport, usb_device, "purpose")

        with pytest.raises(SessionOpenFailedError):
            session._connect()

        assert session.state is SessionState.FAILED


def _raise(error: Exception):
    def fail(*args):
        raise error

    return fail


class _ResetHandle:
    def get_name(self):
        raise ConnectionResetError("peer reset")

    def close(self):
        pass


class _BrokenHandle:
    closed = False

    def heartbeat(self):
        raise ProtocolError("connection reset", USB_UDID)

    def close(self):
        self.closed = True


class TestOperations:
    def test_get_name(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        with LockdownSession.open(transport, usb_device, "purpose") as session:
            assert session.get_name() == "Test iPhone"

    def test_get_name_declined(self, usb_device: DeviceDescriptor) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID, name=None)])
        with LockdownSession.open(transport, usb_device, "purpose") as session:
            with pytest.raises(AttributeUnavailableError):
                session.get_name()
            assert session.state is SessionState.READY

    def test_set_value_without_passcode_is_precondition_unmet(self, usb_device: DeviceDescriptor) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID, passcode_set=False)])

        with LockdownSession.open(transport, usb_device, "purpose") as session:
            with pytest.raises(PreconditionUnmetError) as exc:
                session.set_value("com.apple.mobile.wireless_lockdown", "EnableWifiDebugging", True)

        assert "passcode" in str(exc.value)
        assert len(_calls(transport, "set_value")) == 1

    def test_request_pairing_returns_record(self, transport: MockTransport, usb_device: DeviceDescriptor) -> None:
        with LockdownSession.open(transport, usb_device, "purpose") as session:
            record = session.request_pairing()

        assert record.owner_identity == USB_UDID
        assert plistlib.loads(record.payload)["UDID"] == USB_UDID

    def test_request_pairing_supersedes_previous_record(self, usb_device: DeviceDescriptor) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID)], records={USB_UDID: b"old"})

        with LockdownSession.open(transport, usb_device, "purpose") as session:
            record = session.request_pairing()

        assert record.payload != b"old"
        assert transport.records[USB_UDID] == record.payload

    def test_request_pairing_over_network_is_rejected(self) -> None:
        transport = MockTransport([MockDevice(identity=USB_UDID, transport=NetworkTransport())])
        device = DeviceDescriptor(identity=USB_UDID, transport=NetworkTransport())

        with LockdownSession.open(transport, device, "purpose") as session:
            with pytest.raises(WrongTransportForPairingError):
                session.request_pairing()

        assert not _calls(transport, "pair")
        assert USB_UDID not in transport.records
