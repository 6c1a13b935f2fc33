"""pairing-cli: manage iOS pairing files for WiFi sync.

Usage:
    from pairing_cli import SessionOrchestrator, MobileDeviceTransport

    orchestrator = SessionOrchestrator(MobileDeviceTransport())
    device = orchestrator.select_device("00008110-000A1B2C3D4E801E")
    orchestrator.export_pairing_file(device, "~/pairing")
"""

from .core import MobileDeviceTransport, SessionOrchestrator

__version__ = "0.1.0"

__all__ = ["MobileDeviceTransport", "SessionOrchestrator", "__version__"]
