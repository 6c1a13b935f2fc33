"""Device transport capability and its pymobiledevice3 implementation.

The rest of the package talks to devices only through ``DeviceTransport`` and
``TransportSession``. ``MobileDeviceTransport`` implements them over usbmuxd
and lockdownd using pymobiledevice3, translating library exceptions into
``pairing_cli.core.errors``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import plistlib
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from .errors import (
    AttributeUnavailableError,
    EnumerationUnavailableError,
    PreconditionUnmetError,
    ProtocolError,
    SessionOpenFailedError,
)
from .types import LOCKDOWN_PORT, NetworkTransport, Transport, UsbTransport

logger = logging.getLogger(__name__)

# lockdownd answers a WiFi-debugging write with this when no passcode is set
PASSCODE_ERRORS = {"PasswordProtected", "UnknownError"}
HEARTBEAT_SERVICE = "com.apple.mobile.heartbeat"


class TransportSession(ABC):
    """One open lockdown connection as seen by the transport layer."""

    @abstractmethod
    def get_name(self) -> str: ...

    @abstractmethod
    def set_value(self, domain: str, key: str, value: Any) -> None: ...

    @abstractmethod
    def pair(self) -> None: ...

    @abstractmethod
    def heartbeat(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class DeviceTransport(ABC):
    """Discovery, session creation and pairing-record lookup."""

    @abstractmethod
    def enumerate(self) -> list[tuple[str, Transport]]: ...

    @abstractmethod
    def open_session(self, identity: str, transport: Transport, purpose: str) -> TransportSession: ...

    @abstractmethod
    def read_pairing_record(self, identity: str) -> bytes | None: ...


def _error_code(exc: Exception) -> str:
    return str(exc.args[0]) if exc.args else type(exc).__name__


class LockdownLoop:
    """Runs pymobiledevice3 calls on one event loop owned by a daemon thread.

    Recent pymobiledevice3 releases expose the lockdown API as coroutines
    whose sockets are bound to the loop that opened them, so every call for
    a transport goes through the same loop. Plain return values from older
    synchronous releases pass straight through.
    """

    def __init__(self):
        self._loop: asyncio.AbstractEventLoop | None = None
        self._guard = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._guard:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                threading.Thread(target=self._loop.run_forever, name="pairing-cli-lockdown", daemon=True).start()
            return self._loop

    def resolve(self, value):
        if not inspect.isawaitable(value):
            return value

        async def _await():
            return await value

        return asyncio.run_coroutine_threadsafe(_await(), self._ensure_loop()).result()


class MobileDeviceSession(TransportSession):
    """Wraps a pymobiledevice3 ``LockdownClient``."""

    def __init__(self, client, identity: str, pair_timeout: float | None = None, loop: LockdownLoop | None = None):
        self._client = client
        self.identity = identity
        self.pair_timeout = pair_timeout
        self._loop = loop or LockdownLoop()

    def get_name(self) -> str:
        from pymobiledevice3.exceptions import GetProhibitedError, MissingValueError, PyMobileDevice3Exception

        try:
            name = self._loop.resolve(self._client.get_value(key="DeviceName"))
        except (GetProhibitedError, MissingValueError) as e:
            raise AttributeUnavailableError(f"device declined DeviceName ({_error_code(e)})", self.identity)
        except (PyMobileDevice3Exception, OSError) as e:
            raise ProtocolError(f"GetValue failed: {_error_code(e)}", self.identity)
        if not name:
            raise AttributeUnavailableError("device returned no DeviceName", self.identity)
        return str(name)

    def set_value(self, domain: str, key: str, value: Any) -> None:
        from pymobiledevice3.exceptions import LockdownError, PasswordRequiredError, PyMobileDevice3Exception

        try:
            self._loop.resolve(self._client.set_value(value, domain=domain, key=key))
        except PasswordRequiredError:
            raise PreconditionUnmetError("device must have a passcode set", self.identity)
        except LockdownError as e:
            if _error_code(e) in PASSCODE_ERRORS:
                raise PreconditionUnmetError("device must have a passcode set", self.identity)
            raise ProtocolError(f"SetValue {domain}/{key} failed: {_error_code(e)}", self.identity)
        except (PyMobileDevice3Exception, OSError) as e:
            raise ProtocolError(f"SetValue {domain}/{key} failed: {_error_code(e)}", self.identity)

    def pair(self) -> None:
        from pymobiledevice3.exceptions import (
            PairingDialogResponsePendingError,
            PasswordRequiredError,
            PyMobileDevice3Exception,
            UserDeniedPairingError,
        )

        try:
            self._loop.resolve(self._client.pair(timeout=self.pair_timeout))
        except UserDeniedPairingError:
            raise PreconditionUnmetError("pairing was denied on the device", self.identity)
        except PairingDialogResponsePendingError:
            raise PreconditionUnmetError("tap 'Trust' on the device and try again", self.identity)
        except PasswordRequiredError:
            raise PreconditionUnmetError("unlock the device and try again", self.identity)
        except (PyMobileDevice3Exception, OSError) as e:
            raise ProtocolError(f"pairing failed: {_error_code(e)}", self.identity)

    def heartbeat(self) -> None:
        from pymobiledevice3.exceptions import NotPairedError, PyMobileDevice3Exception

        if not self._client.paired:
            raise PreconditionUnmetError("pairing record was not accepted by the device", self.identity)
        try:
            connection = self._loop.resolve(self._client.start_lockdown_service(HEARTBEAT_SERVICE))
        except NotPairedError:
            raise PreconditionUnmetError("pairing record was not accepted by the device", self.identity)
        except (PyMobileDevice3Exception, OSError) as e:
            raise ProtocolError(f"heartbeat service failed: {_error_code(e)}", self.identity)
        self._loop.resolve(connection.close())

    def close(self) -> None:
        self._loop.resolve(self._client.close())


class MobileDeviceTransport(DeviceTransport):
    """Talks to real devices through usbmuxd and lockdownd."""

    def __init__(
        self,
        usbmux_address: Optional[str] = None,
        pair_timeout: float | None = None,
        records_folder: Optional[Path] = None,
    ):
        self.usbmux_address = usbmux_address
        self.pair_timeout = pair_timeout
        self.records_folder = records_folder
        self.loop = LockdownLoop()

    def enumerate(self) -> list[tuple[str, Transport]]:
        from pymobiledevice3.exceptions import MuxException
        from pymobiledevice3.usbmux import list_devices

        try:
            devices = self.loop.resolve(list_devices(usbmux_address=self.usbmux_address))
        except (MuxException, OSError) as e:
            raise EnumerationUnavailableError(
                f"Unable to look up devices ({str(e) or type(e).__name__}). "
                "Make sure usbmuxd is running and that you can connect to it."
            )

        found: list[tuple[str, Transport]] = []
        for d in devices:
            transport = UsbTransport() if d.connection_type == "USB" else NetworkTransport()
            found.append((d.serial, transport))
        return found

    def open_session(self, identity: str, transport: Transport, purpose: str) -> TransportSession:
        from pymobiledevice3.exceptions import PyMobileDevice3Exception
        from pymobiledevice3.lockdown import create_using_tcp, create_using_usbmux

        try:
            if isinstance(transport, NetworkTransport) and transport.address:
                pending = create_using_tcp(
                    hostname=transport.address,
                    identifier=identity,
                    label=purpose,
                    autopair=False,
                    port=transport.port or LOCKDOWN_PORT,
                    pairing_records_cache_folder=self.records_folder,
                )
            else:
                pending = create_using_usbmux(
                    serial=identity,
                    label=purpose,
                    autopair=False,
                    connection_type="Network" if isinstance(transport, NetworkTransport) else "USB",
                    pairing_records_cache_folder=self.records_folder,
                    usbmux_address=self.usbmux_address,
                )
            client = self.loop.resolve(pending)
        except (PyMobileDevice3Exception, OSError) as e:
            raise SessionOpenFailedError(f"failed to start lockdown client: {str(e) or type(e).__name__}", identity)

        logger.debug("Opened lockdown client %r for %s", purpose, identity)
        return MobileDeviceSession(client, identity, pair_timeout=self.pair_timeout, loop=self.loop)

    def read_pairing_record(self, identity: str) -> bytes | None:
        from pymobiledevice3.exceptions import MuxException, NotPairedError
        from pymobiledevice3.pair_records import create_pairing_records_cache_folder, get_preferred_pair_record

        folder = create_pairing_records_cache_folder(self.records_folder)
        try:
            record = self.loop.resolve(
                get_preferred_pair_record(identity, folder, usbmux_address=self.usbmux_address)
            )
        except (NotPairedError, MuxException):
            return None
        if not record:
            return None
        return plistlib.dumps(record)
