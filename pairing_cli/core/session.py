"""Single-purpose lockdown sessions.

A session is opened for one operation against one device and closed before
the next one is opened. Use it as a context manager so it is closed on every
exit path:

    with LockdownSession.open(transport, device, "pairing_cli_wifi_on") as session:
        session.set_value(domain, key, True)
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import (
    AttributeUnavailableError,
    PairingToolError,
    PreconditionUnmetError,
    ProtocolError,
    SessionNotReadyError,
    SessionOpenFailedError,
    WrongTransportForPairingError,
)
from .transport import DeviceTransport, TransportSession
from .types import DeviceDescriptor, PairingRecord, SessionState

logger = logging.getLogger(__name__)

# Failures after which the device is still in a known state
RECOVERABLE_ERRORS = (AttributeUnavailableError, PreconditionUnmetError)


class LockdownSession:
    """Lockdown session state machine: Opening -> Ready -> Closed, or -> Failed."""

    def __init__(self, transport: DeviceTransport, device: DeviceDescriptor, purpose_tag: str):
        self.transport = transport
        self.device = device
        self.purpose_tag = purpose_tag
        self.state = SessionState.OPENING
        self.failure_reason: str | None = None
        self._handle: TransportSession | None = None

    @classmethod
    def open(cls, transport: DeviceTransport, device: DeviceDescriptor, purpose_tag: str) -> LockdownSession:
        """Open a session, raising SessionOpenFailedError if the device is unreachable."""
        session = cls(transport, device, purpose_tag)
        session._connect()
        return session

    def _connect(self):
        if self.state is not SessionState.OPENING:
            raise SessionNotReadyError(f"cannot open a session in state {self.state.value}", self.device.identity)
        try:
            self._handle = self.transport.open_session(self.device.identity, self.device.transport, self.purpose_tag)
        except SessionOpenFailedError as e:
            self._fail(e.message)
            raise
        except PairingToolError as e:
            self._fail(e.message)
            raise SessionOpenFailedError(e.message, self.device.identity) from e
        except OSError as e:
            self._fail(str(e))
            raise SessionOpenFailedError(f"failed to open session: {e}", self.device.identity) from e
        self.state = SessionState.READY

    def __enter__(self) -> LockdownSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<LockdownSession {self.device.identity} purpose={self.purpose_tag} state={self.state.value}>"

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_name(self) -> str:
        return self._call("get_name", lambda h: h.get_name())

    def set_value(self, domain: str, key: str, value: Any) -> None:
        self._call("set_value", lambda h: h.set_value(domain, key, value))

    def request_pairing(self) -> PairingRecord:
        """Run the pairing handshake and return the new record.

        Only allowed over the wired transport; a network session is rejected
        before anything is sent to the device.
        """
        if self.device.is_network:
            raise WrongTransportForPairingError("Device must be plugged into USB", self.device.identity)
        self._call("pair", lambda h: h.pair())

        payload = self.transport.read_pairing_record(self.device.identity)
        if not payload:
            raise ProtocolError("pairing succeeded but no pairing record was stored", self.device.identity)
        return PairingRecord(owner_identity=self.device.identity, payload=payload)

    def heartbeat(self) -> None:
        self._call("heartbeat", lambda h: h.heartbeat())

    def close(self):
        """Release the transport handle. Safe to call more than once."""
        handle, self._handle = self._handle, None
        if self.state in (SessionState.OPENING, SessionState.READY):
            self.state = SessionState.CLOSED
        if handle is None:
            return
        try:
            handle.close()
        except OSError as e:
            logger.debug("Error closing session %r for %s: %s", self.purpose_tag, self.device.identity, e)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(self, operation: str, fn):
        if self.state is not SessionState.READY or self._handle is None:
            raise SessionNotReadyError(
                f"cannot {operation} on a {self.state.value} session", self.device.identity
            )
        try:
            return fn(self._handle)
        except RECOVERABLE_ERRORS:
            raise
        except PairingToolError as e:
            self._fail(e.message)
            raise
        except OSError as e:
            self._fail(str(e) or type(e).__name__)
            raise ProtocolError(f"{operation} failed: {str(e) or type(e).__name__}", self.device.identity) from e

    def _fail(self, reason: str):
        self.state = SessionState.FAILED
        self.failure_reason = reason
        logger.debug("Session %r for %s failed: %s", self.purpose_tag, self.device.identity, reason)
