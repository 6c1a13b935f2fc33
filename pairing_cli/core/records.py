"""Reading and exporting host pairing records."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from .errors import (
    DestinationNotSelectedError,
    DestinationUnwritableError,
    IdentityMismatchError,
    PairingRecordNotFoundError,
)
from .transport import DeviceTransport
from .types import PairingRecord

logger = logging.getLogger(__name__)


class PairingRecordStore:
    """Looks up pairing records through the transport and writes them out verbatim."""

    def __init__(self, transport: DeviceTransport):
        self.transport = transport

    def read(self, identity: str) -> PairingRecord:
        payload = self.transport.read_pairing_record(identity)
        if not payload:
            raise PairingRecordNotFoundError("Failed to get pairing file: device has not been paired", identity)
        return PairingRecord(owner_identity=identity, payload=payload)

    def export(
        self,
        record: PairingRecord,
        destination: str | os.PathLike | None,
        identity: str | None = None,
    ) -> Path:
        """Write ``record`` to ``<destination>/<identity>.plist`` and return the path.

        The file is written to a temporary name and renamed into place, so a
        failed write never leaves a partial pairing file behind.
        """
        if identity is not None and identity != record.owner_identity:
            raise IdentityMismatchError(
                f"pairing record for {record.owner_identity} cannot be exported as {identity}"
            )
        if destination is None:
            raise DestinationNotSelectedError("No path specified", record.owner_identity)

        folder = Path(destination).expanduser()
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationUnwritableError(f"Could not create {folder}: {e}", record.owner_identity)

        target = folder / record.filename
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{record.filename}.", dir=folder)
        except OSError as e:
            raise DestinationUnwritableError(f"Could not open the save file: {e}", record.owner_identity)

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(record.payload)
            os.replace(tmp_name, target)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise DestinationUnwritableError(f"Unable to write to file: {e}", record.owner_identity)

        logger.info("Exported %s to %s", record.filename, folder)
        return target
