"""Offline stand-in for usbmuxd/lockdownd."""

from .transport import MockDevice, MockTransport, sample_devices

__all__ = ["MockDevice", "MockTransport", "sample_devices"]
