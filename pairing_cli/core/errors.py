"""Failures raised by device discovery, lockdown sessions and pairing-record export."""

from __future__ import annotations


class PairingToolError(Exception):
    """Base class for every failure an operation can report."""

    kind = "error"

    def __init__(self, message: str, identity: str | None = None):
        self.identity = identity
        self.message = message
        super().__init__(f"{identity}: {message}" if identity else message)

    def to_dict(self) -> dict:
        d = {"error": self.message, "kind": self.kind}
        if self.identity:
            d["udid"] = self.identity
        return d


class EnumerationUnavailableError(PairingToolError):
    """The device multiplexing service could not be reached."""
    kind = "enumeration_unavailable"


class NoDevicesFoundError(PairingToolError):
    """Discovery worked but nothing (or nothing matching) is attached."""
    kind = "no_devices_found"


class SessionOpenFailedError(PairingToolError):
    """The device is unreachable on the descriptor's transport."""
    kind = "session_open_failed"


class AttributeUnavailableError(PairingToolError):
    """The device declined to answer a value query."""
    kind = "attribute_unavailable"


class ProtocolError(PairingToolError):
    """Unexpected lockdown failure with no user-actionable remedy."""
    kind = "protocol_error"


class SessionNotReadyError(ProtocolError):
    """An operation was issued on a session that is not Ready."""
    kind = "session_not_ready"


class PreconditionUnmetError(PairingToolError):
    """The device rejected a request because of a fixable device-side condition."""
    kind = "precondition_unmet"


class WrongTransportForPairingError(PairingToolError):
    """Pairing was requested over a network transport."""
    kind = "wrong_transport_for_pairing"


class PairingRecordNotFoundError(PairingToolError):
    kind = "pairing_record_not_found"


class DestinationNotSelectedError(PairingToolError):
    kind = "destination_not_selected"


class DestinationUnwritableError(PairingToolError):
    kind = "destination_unwritable"


class InvalidAddressError(PairingToolError):
    kind = "invalid_address"


class PromptUnavailableError(PairingToolError):
    """A step needs an answer from the user but no interactive prompt is attached."""
    kind = "prompt_unavailable"


class IdentityMismatchError(ValueError):
    """A pairing record was used for a device it does not belong to."""
