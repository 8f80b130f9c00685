"""Command, status, connection and LED logic for a BLE remote for DJI action cameras."""

__version__ = "0.1.0"
__all__ = [
    "enums",
    "state",
    "light",
    "commands",
    "slots",
    "status",
    "connection",
    "boot_scan",
]